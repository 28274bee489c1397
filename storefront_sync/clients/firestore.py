import firebase_admin
from firebase_admin import credentials, firestore
from flask import current_app

from ..config import firebase_credentials
from ..utils.logger import info


class FirestoreConfigError(RuntimeError):
    pass


def build_firestore_client(config):
    """Firestore handle for this process.

    Reuses the default firebase app when one is already initialised (e.g. on
    GCP with ambient credentials); otherwise initialises it from the service
    account env vars.
    """
    try:
        app = firebase_admin.get_app()
    except ValueError:
        cert = firebase_credentials(config)
        if cert is None:
            raise FirestoreConfigError("Firebase Admin credentials not configured")
        app = firebase_admin.initialize_app(credentials.Certificate(cert))
        info(f"[firestore] initialised app for project {cert['project_id']}")
    return firestore.client(app)


def get_db():
    """The app's Firestore handle, built on first use."""
    db = current_app.extensions.get("firestore")
    if db is None:
        db = build_firestore_client(current_app.config)
        current_app.extensions["firestore"] = db
    return db

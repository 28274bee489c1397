import sys
import logging

import click
from flask import Flask, jsonify
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from .config import load_config, shopify_store
from .utils.logger import logger


def create_app(overrides=None, db=None):
    load_dotenv()
    app = Flask(__name__)
    app.config.update(load_config())
    if overrides:
        app.config.update(overrides)
    if db is not None:
        app.extensions["firestore"] = db

    # =========================================================
    # Logging: gunicorn's handlers when running under it, plus stdout
    # =========================================================
    gunicorn_error = logging.getLogger("gunicorn.error")
    app.logger.handlers = gunicorn_error.handlers
    app.logger.setLevel(logging.INFO)

    # create_app may run more than once per process (tests, CLI)
    if not logger.handlers:
        sh = logging.StreamHandler(sys.stdout)
        sh.setFormatter(logging.Formatter("[%(asctime)s][%(levelname)s] %(message)s", "%H:%M:%S"))
        logger.addHandler(sh)
        for h in gunicorn_error.handlers:
            logger.addHandler(h)

    # =========================================================
    # Blueprints
    # =========================================================
    from .routes.register import bp as register_bp
    from .routes.webhooks import bp as webhooks_bp

    app.register_blueprint(register_bp, url_prefix="/register_webhooks")
    app.register_blueprint(webhooks_bp, url_prefix="/api/shopify/webhooks")

    # =========================================================
    # JSON errors
    # =========================================================
    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify(error=e.name, message=e.description), e.code

    @app.get("/health")
    def health():
        app.logger.info("Health check endpoint called")
        return {"ok": True}, 200

    # =========================================================
    # CLI
    # =========================================================
    @app.cli.command("sync-mirror")
    @click.option("--page-delay", default=0.5, show_default=True, help="Seconds between product pages.")
    def sync_mirror(page_delay):
        """Backfill the raw Shopify mirror from the product list."""
        from .clients.firestore import get_db
        from .clients.shopify import list_products
        from .services.reconcile import upsert_mirror

        db = get_db()
        products = list_products(shopify_store(app.config), page_delay=page_delay)
        ok, failed = 0, 0
        for prod in products:
            try:
                upsert_mirror(db, prod)
                ok += 1
            except Exception as e:
                failed += 1
                click.echo(f"Failed to mirror {prod.get('id')} ({prod.get('title')}): {e}", err=True)
        click.echo(f"Mirrored {ok} products, {failed} failed.")

    return app

import click
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from config import config

db = SQLAlchemy()


def create_app(config_name='default', text_to_items=None, image_share=None):
    """
    Application factory: creates and configures the Flask app.

    `text_to_items` / `image_share` override the capability implementations
    (tests pass fakes). Without an override, AI extraction is enabled only
    when GROQ_API_KEY is configured and image sharing stays disabled.
    """
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # ── Logging ───────────────────────────────────────────────────
    from billstation.utils.logging import setup_logging
    setup_logging(app)

    # ── Extensions ────────────────────────────────────────────────
    db.init_app(app)
    from billstation.storage import models  # noqa: F401  registers KeyValue with SQLAlchemy

    if text_to_items is None and app.config.get('GROQ_API_KEY'):
        from billstation.extraction.groq_client import GroqTextToItems
        text_to_items = GroqTextToItems(
            api_key=app.config['GROQ_API_KEY'],
            model=app.config['GROQ_MODEL'],
        )
    app.extensions['text_to_items'] = text_to_items
    app.extensions['image_share']   = image_share

    # ── Blueprints ────────────────────────────────────────────────
    from billstation.billing.routes import billing as billing_blueprint
    app.register_blueprint(billing_blueprint, url_prefix='/billing')

    # ── Error Handlers ────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(e):
        return jsonify({'error': 'Server error'}), 500

    # ── CLI Commands ──────────────────────────────────────────────
    register_commands(app)

    # ── ProxyFix (HTTPS termination) ──
    # Share links are built with url_for(_external=True) and must carry
    # the public scheme/host, not the proxy's.
    if not app.testing:
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app


def register_commands(app):
    """Register custom Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db():
        """Create all database tables."""
        db.create_all()
        click.echo('✅  Database tables created.')

    @app.cli.command('show-ledger')
    def show_ledger():
        """Show today's ledger totals (diagnostic)."""
        from billstation.billing.money import fmt
        from billstation.storage.models import SqlKeyValueStore, load_ledger

        ledger = load_ledger(SqlKeyValueStore())
        if not len(ledger):
            click.echo('Ledger is empty.')
            return
        click.echo(f'{"Bill ID":<18} {"Time":<6} {"Customer":<20} {"Total":>10}')
        click.echo('─' * 57)
        for e in ledger:
            click.echo(f'{e.bill_id:<18} {e.time:<6} {e.customer[:20]:<20} {fmt(e.total):>10}')
        s = ledger.summary()
        click.echo('─' * 57)
        click.echo(f'{s.count} bills | gross {fmt(s.subtotal)} | '
                   f'discount {fmt(s.discount)} | net {fmt(s.total)}')

    @app.cli.command('export-ledger')
    @click.option('--output', '-o', type=click.File('w'), default='-',
                  help='File to write the TSV to (default: stdout)')
    def export_ledger(output):
        """Write the ledger as tab-separated text."""
        from billstation.storage.models import SqlKeyValueStore, load_ledger

        output.write(load_ledger(SqlKeyValueStore()).export() + '\n')

    @app.cli.command('clear-ledger')
    @click.confirmation_option(
        prompt="Are you sure you want to clear the daily ledger? "
               "This will permanently delete today's saved records.")
    def clear_ledger():
        """Permanently empty the daily ledger."""
        from billstation.storage.models import SqlKeyValueStore, load_ledger, save_ledger

        store = SqlKeyValueStore()
        ledger = load_ledger(store)
        count = len(ledger)
        ledger.clear()
        save_ledger(store, ledger)
        app.logger.info(f"Ledger cleared from CLI ({count} entries)")
        click.echo(f'✅  Cleared {count} ledger entries.')

    return app

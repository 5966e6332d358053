from billstation import create_app, db
import os

config_name = os.environ.get('FLASK_ENV', 'production')
app = create_app(config_name)

# ── AUTO-INIT ──
# Ensures the key-value table exists on startup (no shell access on most hosts)
with app.app_context():
    try:
        db.create_all()
    except Exception as e:
        app.logger.error(f"⚠️ Startup sequence failed: {e}")

if __name__ == "__main__":
    app.run()

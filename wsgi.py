import os

# gunicorn "wsgi:app"; FLASK_CONFIG / ENV still override this default
os.environ.setdefault("ENV", "production")

from relevant_recovery import create_app  # noqa: E402

app = create_app()

from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[1] / ".env")

try:
    from backend.planit.server import create_app
except ImportError:  # pragma: no cover
    from planit.server import create_app

# Room state lives in this process; run a single worker.
app, socketio = create_app()

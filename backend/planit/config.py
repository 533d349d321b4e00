import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Presence: how long a fully disconnected user keeps its seat in rooms
    GRACE_PERIOD_SEC = float(os.environ.get("GRACE_PERIOD_SEC", "5"))

    # Rooms
    ROOM_ID_LENGTH = int(os.environ.get("ROOM_ID_LENGTH", "9"))
    MAX_ROOM_NAME_LENGTH = int(os.environ.get("MAX_ROOM_NAME_LENGTH", "64"))
    DEFAULT_VOTING_SCALE = [
        v.strip()
        for v in os.environ.get("DEFAULT_VOTING_SCALE", "0,1,2,3,5,8,13,21,?").split(",")
        if v.strip()
    ]
    ENFORCE_VOTING_SCALE = os.environ.get("ENFORCE_VOTING_SCALE", "0") == "1"

class RoomError(Exception):
    """Base for failures reported back to the requester only."""


class RoomNotFound(RoomError):
    def __init__(self, message: str = "Room not found") -> None:
        super().__init__(message)


class NotAuthorized(RoomError):
    pass


class ValidationError(RoomError):
    pass

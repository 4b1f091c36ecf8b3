from fastapi import HTTPException, status

# ======================================================
# ORDER ENGINE ERRORS
# ======================================================
# All subclasses of HTTPException so routes can let them propagate as-is.


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class Unauthorized(HTTPException):
    def __init__(self, detail: str = "You are not authorized to access this order"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InvalidInput(HTTPException):
    def __init__(self, detail="Invalid input"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class InvalidTransition(InvalidInput):
    """
    Status edge not allowed for the acting party.
    Detail carries enough context for a specific user-facing message.
    """

    def __init__(self, message: str, *, current_status: str, attempted_status: str, actor: str):
        self.current_status = current_status
        self.attempted_status = attempted_status
        self.actor = actor
        super().__init__(detail={
            "message": message,
            "current_status": current_status,
            "attempted_status": attempted_status,
            "actor": actor,
        })


class OrderConflict(HTTPException):
    def __init__(self, detail: str = "Order was modified concurrently, reload and retry"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class UpstreamResolutionFailure(HTTPException):
    def __init__(self, detail: str = "Content record could not be updated"):
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)

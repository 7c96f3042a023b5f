"""
Domain errors raised by the service layer.

Each one is an ``HTTPException`` so FastAPI renders it without an extra
translation step; callers that need to branch on the reason catch the
specific subclass.
"""
from fastapi import HTTPException, status


class SocialError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed."

    def __init__(self, detail: str = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class BadRequestError(SocialError):
    default_detail = "Bad request."


class SelfActionError(SocialError):
    default_detail = "You cannot perform this action on yourself."


class AlreadyFriendsError(SocialError):
    default_detail = "You are already friends."


class DuplicateRequestError(SocialError):
    default_detail = "Friend request already sent."


class BlockedError(SocialError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You cannot send a request due to privacy/block settings."


class NotAuthorizedError(SocialError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You are not allowed to perform this action."


class ForbiddenError(SocialError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied."


class NotFoundError(SocialError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."


class ConflictError(SocialError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists."

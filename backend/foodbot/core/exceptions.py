"""
Exception taxonomy for the conversation core, plus safe HTTP conversions.

PRINCIPLE: Don't expose internal details to users.
Every domain error carries a user-facing message that is safe to send
over chat; details go to the log only.
"""
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)

GENERIC_RETRY_MESSAGE = "Sorry, something went wrong. Please try again."


class FoodBotError(Exception):
    """Base class. `user_message` is the only text that may reach a customer."""

    user_message = GENERIC_RETRY_MESSAGE

    def __init__(self, detail: str = "", user_message: str | None = None):
        super().__init__(detail or self.__class__.__name__)
        if user_message is not None:
            self.user_message = user_message


class UserInputError(FoodBotError):
    """Invalid quantity, too-short address, unknown selection. Re-prompt, step unchanged."""


class NotFoundError(FoodBotError):
    """Stale food/category id or missing record. Reset to initial with an explanation."""

    user_message = "Sorry, that item is no longer available."


class GatewayError(FoodBotError):
    """Payment gateway create/verify failed or timed out."""

    user_message = "We couldn't reach the payment service right now. Please try again later."


class PersistenceError(FoodBotError):
    """A session/order write failed; the unit of work was rolled back."""


class SignatureError(FoodBotError):
    """Inbound gateway webhook signature mismatch. Rejected at the boundary."""


class BusinessError:
    """HTTP exceptions with safe (non-leaky) messages."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> HTTPException:
        """
        Generic 404 that doesn't confirm resource existence.

        Example:
            if not order:
                raise BusinessError.not_found("Order")
        """
        if reason:
            logger.warning(f"Not found: {resource} - {reason}")

        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Resource not found",
        )

    @staticmethod
    def unauthorized(reason: str = "") -> HTTPException:
        """Generic 401 for all credential failures."""
        logger.warning(f"Unauthorized access attempt: {reason}")
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
        )

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """
        400 for input validation / business logic errors.

        OK to include specific details here since the caller caused the issue.
        """
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    @staticmethod
    def bad_gateway(original_error: Exception = None) -> HTTPException:
        """502 when the payment gateway could not be reached."""
        if original_error:
            logger.error(f"Gateway failure: {type(original_error).__name__}: {original_error}")
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Payment service unavailable. Please try again later.",
        )

    @staticmethod
    def server_error(original_error: Exception = None) -> HTTPException:
        """
        Generic 500 - logs actual error internally, hides from caller.
        """
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
                exc_info=True
            )
        else:
            logger.error("Internal server error occurred", exc_info=True)

        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal error occurred. Please try again later.",
        )

"""
Plumbing shared by every team action: the caller context, the failure
taxonomy, and the decorator that turns raised failures into results.
"""

import enum
import functools
import logging
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from hackteams.schemas.results import ActionResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionContext:
    """Who is calling. ``caller_id`` is None for anonymous callers."""
    caller_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.caller_id is not None


class ErrorKind(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    INVALID_STATE = "invalid_state"
    VALIDATION_FAILED = "validation_failed"


class FailureCode(str, enum.Enum):
    """Tagged failures with their kind and default user-facing message."""

    def __new__(cls, value: str, kind: ErrorKind, message: str):
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.kind = kind
        obj.message = message
        return obj

    UNAUTHENTICATED = ("unauthenticated", ErrorKind.UNAUTHENTICATED, "You must be signed in")
    VALIDATION_FAILED = ("validation_failed", ErrorKind.VALIDATION_FAILED, "Invalid input")

    HACKATHON_NOT_FOUND = ("hackathon_not_found", ErrorKind.NOT_FOUND, "Hackathon not found")
    TEAM_NOT_FOUND = ("team_not_found", ErrorKind.NOT_FOUND, "Team not found")
    TEAM_NOT_IN_HACKATHON = (
        "team_not_in_hackathon", ErrorKind.NOT_FOUND, "Team does not belong to this hackathon"
    )
    USER_NOT_FOUND = ("user_not_found", ErrorKind.NOT_FOUND, "No user found with that email address")
    MEMBER_NOT_FOUND = ("member_not_found", ErrorKind.NOT_FOUND, "Team member not found")
    REQUEST_NOT_FOUND = ("request_not_found", ErrorKind.NOT_FOUND, "Join request not found")
    INVITATION_NOT_FOUND = ("invitation_not_found", ErrorKind.NOT_FOUND, "Invitation not found")

    UNAUTHORIZED = (
        "unauthorized", ErrorKind.UNAUTHORIZED, "You do not have permission to manage this team"
    )

    REGISTRATION_CLOSED = (
        "registration_closed", ErrorKind.INVALID_STATE, "Hackathon is not accepting registrations"
    )
    TEAM_CAP_REACHED = (
        "team_cap_reached",
        ErrorKind.INVALID_STATE,
        "Maximum number of teams has been reached for this hackathon",
    )
    ALREADY_ON_TEAM = (
        "already_on_team", ErrorKind.INVALID_STATE, "You are already part of a team for this hackathon"
    )
    TEAM_NOT_RECRUITING = (
        "team_not_recruiting", ErrorKind.INVALID_STATE, "This team is not looking for new members"
    )
    TEAM_FULL = ("team_full", ErrorKind.INVALID_STATE, "Team is already at maximum capacity")
    ALREADY_REQUESTED = (
        "already_requested", ErrorKind.INVALID_STATE, "You have already requested to join this team"
    )
    ALREADY_INVITED = (
        "already_invited", ErrorKind.INVALID_STATE, "This user has already been invited to this team"
    )
    REQUEST_ALREADY_RESOLVED = (
        "request_already_resolved", ErrorKind.INVALID_STATE, "This join request has already been handled"
    )
    INVITATION_ALREADY_RESOLVED = (
        "invitation_already_resolved", ErrorKind.INVALID_STATE, "This invitation has already been answered"
    )
    CANNOT_REMOVE_SELF = (
        "cannot_remove_self", ErrorKind.INVALID_STATE, "Team owners cannot remove themselves"
    )
    OWNER_CANNOT_LEAVE = (
        "owner_cannot_leave", ErrorKind.INVALID_STATE, "Team owners cannot leave their own team"
    )
    INTERNAL = ("internal", ErrorKind.INVALID_STATE, "Something went wrong")


class ActionError(Exception):
    """An expected failure; never leaves the action boundary."""

    def __init__(self, code: FailureCode, message: Optional[str] = None):
        self.code = code
        self.message = message or code.message
        super().__init__(self.message)


def validation_message(errors) -> str:
    """First pydantic error as a user-facing sentence."""
    if not errors:
        return FailureCode.VALIDATION_FAILED.message
    msg = errors[0].get("msg", FailureCode.VALIDATION_FAILED.message)
    return msg.removeprefix("Value error, ")


def team_action(failure_message: str):
    """Run an action as one transaction and always hand back an ActionResult.

    The wrapped coroutine takes ``(db, ctx, ...)``. A returned result is
    committed, even a failure (used when a rejection must be persisted).
    ``ActionError`` and pydantic ``ValidationError`` roll back and become
    tagged failures; anything else is logged and reported generically.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(db: AsyncSession, ctx: ActionContext, *args, **kwargs) -> ActionResult:
            try:
                if not ctx.is_authenticated:
                    raise ActionError(FailureCode.UNAUTHENTICATED)
                result = await func(db, ctx, *args, **kwargs)
                await db.commit()
                return result
            except ActionError as exc:
                await db.rollback()
                logger.debug("%s rejected for %s: %s", func.__name__, ctx.caller_id, exc.code.value)
                return ActionResult.fail(exc.code, exc.message)
            except ValidationError as exc:
                await db.rollback()
                return ActionResult.fail(FailureCode.VALIDATION_FAILED, validation_message(exc.errors()))
            except Exception:
                logger.exception("%s failed for %s", func.__name__, ctx.caller_id)
                await db.rollback()
                return ActionResult.fail(FailureCode.INTERNAL, failure_message)

        return wrapper

    return decorator

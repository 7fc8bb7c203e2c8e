from abc import ABC, abstractmethod
from typing import Any

from tenancy_watch.core.exceptions import AppError
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)


class BaseService(ABC):
    """Base class for action-dispatching services.

    ``execute`` takes the action name as a keyword argument, validates
    the input, then hands off to ``run``. Application errors keep their
    type so the API layer can map them to status codes; anything else is
    wrapped in ``AppError`` naming the failed action.
    """

    def __init__(self):
        self.logger = LOGGER

    async def execute(self, *args, **kwargs) -> Any:
        action = kwargs.get("action", "run")
        service = self.__class__.__name__
        self.logger.debug(f"{service}.{action} called", extra={"service": service, "action": action})

        try:
            self.validate(*args, **kwargs)
            return await self.run(*args, **kwargs)

        except AppError as e:
            self.logger.info(
                f"{service}.{action} rejected: {type(e).__name__}: {e}",
                extra={"service": service, "action": action},
            )
            raise

        except Exception as e:
            self.logger.error(
                f"{service}.{action} failed: {str(e)}",
                exc_info=True,
                extra={"service": service, "action": action},
            )
            raise AppError(f"{action} failed: {str(e)}", original_error=e)

    def validate(self, *args, **kwargs):
        """Raise ``ValidationError`` for bad input. No-op by default."""

    @abstractmethod
    async def run(self, *args, **kwargs) -> Any:
        """Perform ``kwargs["action"]``."""

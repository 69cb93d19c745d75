"""
Interactive credential negotiation after an ambiguous gateway failure.
"""
import enum
import logging
from typing import Tuple

from .errors import UserCancelled
from .models import ChoiceItem, ConnectionOptions
from .ui_manager import await_choice

CREDENTIALS_INFO_MESSAGE = (
    "Connection to gateway failed. Your settings may be incorrect, the server may be unavailable, "
    "or you may lack sufficient privileges to complete the connection."
)

TOKEN = "token"
COOKIE = "cookie"
CANCEL = "cancel"

CREDENTIAL_CHOICES = (
    ChoiceItem("Authenticate with a token", TOKEN),
    ChoiceItem("Authenticate with a cookie", COOKIE),
    ChoiceItem("Cancel", CANCEL),
)


class NegotiationOutcome(enum.Enum):
    TOKEN_APPLIED = "token_applied"
    COOKIE_APPLIED = "cookie_applied"
    CANCELLED = "cancelled"


class CredentialNegotiator:
    """
    Offers token or cookie authentication and returns updated options.

    The caller's options are never modified; a successful round returns a new
    ConnectionOptions value built from them.
    """

    def __init__(self, chooser, prompter):
        """
        Args:
            chooser: The chooser shared with the picker
            prompter: Object with an async ``prompt(label)`` returning text or None
        """
        self.chooser = chooser
        self.prompter = prompter
        self._logger = logging.getLogger("jupygate.negotiator")

    async def negotiate(self, options: ConnectionOptions) -> Tuple[NegotiationOutcome, ConnectionOptions]:
        try:
            item = await await_choice(
                self.chooser,
                CREDENTIAL_CHOICES,
                info_message=CREDENTIALS_INFO_MESSAGE,
                loading_message=None,
                empty_message=None,
            )
            action = item.value
        except UserCancelled:
            action = CANCEL

        self._logger.info(f"Credential strategy chosen: {action}")

        if action == TOKEN:
            token = await self._prompt_for_text("Token:")
            if token is None:
                return NegotiationOutcome.CANCELLED, options
            return NegotiationOutcome.TOKEN_APPLIED, options.with_token(token)

        if action == COOKIE:
            cookie = await self._prompt_for_text("Cookie:")
            if cookie is None:
                return NegotiationOutcome.CANCELLED, options
            return NegotiationOutcome.COOKIE_APPLIED, options.with_cookie(cookie)

        self.chooser.cancel()
        return NegotiationOutcome.CANCELLED, options

    async def _prompt_for_text(self, label: str):
        """
        Hide the chooser while prompting; bring it back only if text was entered.

        An empty or cancelled prompt ends the whole flow, so the chooser stays
        dismissed in that case.
        """
        previous_window = self.chooser.previously_focused_window
        self.chooser.cancel()
        response = await self.prompter.prompt(label)
        if not response:
            self._logger.info(f"Prompt {label!r} cancelled")
            return None
        self.chooser.update([], loading_message="Retrying connection...")
        self.chooser.show()
        self.chooser.previously_focused_window = previous_window
        return response

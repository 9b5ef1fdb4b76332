"""Chat exchange pipeline.

Executes the full exchange for one player message:
  1. Load the scenario; split characters into the player and AI characters
     (no AI characters → NoAiCharacters, nothing written).
  2. Ensure the scenario's turn collection, read history, allocate the
     turn number. All reads happen before any write.
  3. Embed and store the player's turn. Failure here aborts the exchange.
  4. For each AI character, in scenario order:
       a. Context window — last 10 turns of the running history.
       b. System prompt — persona + scenario time/venue (Handlebars).
       c. Chat completion → embed reply → dispatch the store write.
       d. Append the reply to the running history for the next character.
     A failure for one character yields an error-flagged reply; the loop
     continues with the next character.
  5. Await every dispatched write; a failed write flags its reply.

Result: ExchangeResult with one CharacterReply per AI character.
"""

from .context import (  # noqa: F401
    display_message,
    format_conversation,
    history_as_chat_messages,
    speaker_name,
)
from .core import run_exchange  # noqa: F401

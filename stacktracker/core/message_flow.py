"""
Applies free-text updates to the current session.
"""
import logging
from typing import Optional

from ..models.session import StackSource
from ..parsers.message_parser import MessageParser, ParsedEntities
from .exceptions import InvalidOperation, NoActiveSession
from .lifecycle import SessionLifecycleManager

logger = logging.getLogger(__name__)


class MessageProcessor:
    """Feeds parsed messages into a lifecycle manager.

    Entities are applied in a fixed order so a stack reported together
    with new blinds is stored against the new level, and an elimination
    always comes last.
    """

    def __init__(self, manager: SessionLifecycleManager,
                 parser: Optional[MessageParser] = None):
        self.manager = manager
        self.parser = parser or MessageParser()

    def process(self, text: str) -> ParsedEntities:
        record = self.manager.current_session
        if record is None:
            raise NoActiveSession("process a message")

        entities = self.parser.parse(text)
        if not entities.has_any_data:
            logger.debug("Nothing recognised in message %r", text)
            return entities

        if record.is_tournament:
            self._apply_tournament(entities)
        else:
            self._apply_cash(entities)
        return entities

    def _apply_cash(self, entities: ParsedEntities) -> None:
        if entities.chip_count is not None:
            self.manager.record_observation(entities.chip_count, StackSource.DERIVED_FROM_MESSAGE)
        if entities.hand_note:
            self.manager.record_hand_note(entities.hand_note)

    def _apply_tournament(self, entities: ParsedEntities) -> None:
        manager = self.manager

        if (entities.level_number is not None or entities.small_blind is not None
                or entities.big_blind is not None):
            try:
                manager.update_blinds(
                    level_number=entities.level_number,
                    small_blind=entities.small_blind,
                    big_blind=entities.big_blind,
                    ante=entities.ante,
                    is_display_level=True,
                )
            except InvalidOperation as e:
                logger.warning("Ignoring blind update: %s", e)

        if entities.total_entries is not None or entities.players_remaining is not None:
            try:
                manager.update_field(entities.total_entries, entities.players_remaining)
            except InvalidOperation as e:
                logger.warning("Ignoring field update: %s", e)

        if entities.bounty_collected:
            manager.record_bounty()

        if entities.took_rebuy:
            manager.record_rebuy()

        if entities.chip_count is not None:
            manager.record_observation(entities.chip_count, StackSource.DERIVED_FROM_MESSAGE)

        if entities.hand_note:
            manager.record_hand_note(entities.hand_note)

        if entities.is_eliminated:
            manager.complete(entities.payout_amount or 0, entities.finish_position or None)

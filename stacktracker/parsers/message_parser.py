"""
Free-text update parser.

Players post short updates like "lvl 7 500/1k, 32k, 180 left" while
playing. The parser pulls out the poker entities it can recognise;
anything it does not understand is ignored.
"""
import re
from typing import Optional

from pydantic import BaseModel


class ParsedEntities(BaseModel):
    """Entities recognised in one message."""
    chip_count: Optional[int] = None
    small_blind: Optional[int] = None
    big_blind: Optional[int] = None
    ante: Optional[int] = None
    level_number: Optional[int] = None
    total_entries: Optional[int] = None
    players_remaining: Optional[int] = None
    finish_position: Optional[int] = None
    payout_amount: Optional[int] = None
    bounty_collected: bool = False
    took_rebuy: bool = False
    is_eliminated: bool = False
    hand_note: Optional[str] = None

    @property
    def has_any_data(self) -> bool:
        return any(
            value not in (None, False)
            for value in self.model_dump().values()
        )


def parse_chip_value(value: str) -> int:
    """Parse "500", "1k", "2.5k" or "1.2m"; 0 if unreadable."""
    cleaned = value.strip().lower().replace(",", "")
    multiplier = 1
    if cleaned.endswith("m"):
        multiplier, cleaned = 1_000_000, cleaned[:-1]
    elif cleaned.endswith("k"):
        multiplier, cleaned = 1000, cleaned[:-1]
    try:
        if multiplier == 1:
            return int(cleaned)
        return int(float(cleaned) * multiplier)
    except ValueError:
        return 0


class MessageParser:
    """Regex based parser for in-session updates."""

    LEVEL_PATTERN = re.compile(r"(?:level|lvl|lv)\s*(\d+)")
    BLINDS_PATTERN = re.compile(r"(\d+k?)\s*/\s*(\d+k?)(?:\s*/\s*(\d+k?))?")
    FINISH_PATTERN = re.compile(r"(?:busted|eliminated|finished|came in)\s*(?:in\s+)?(\d+)(?:st|nd|rd|th)?")
    PAYOUT_PATTERN = re.compile(r"(?:cashed|won|payout|got|paid|collected)\s*(?:for\s+)?\$?([\d,]+k?)")
    ENTRIES_PATTERN = re.compile(r"(\d+)\s*(?:entries|runners|entrants|registered)")
    REMAINING_PATTERN = re.compile(r"(\d+)\s*(?:left|remaining|players left|remain)")
    FIELD_PATTERN = re.compile(r"(?:down to|field|field is)\s*(\d+)")
    HAND_NOTE_PATTERN = re.compile(r"(?:hand\s*note|noted|hn|note)\s*:\s*(.+)")

    STACK_PATTERNS = [
        re.compile(r"(?:i have|stack is|stack at|sitting on|sitting at|\bat|chips?)\s+(\d+[km]?(?:,\d{3})*)"),
        re.compile(r"(\d+[km](?:,\d{3})*)\s+(?:chips?|stack)"),
    ]

    BOUNTY_WORDS = ("bounty", "knocked", "knock out")
    REBUY_WORDS = ("rebuy", "rebought", "re-entry", "reentry", "re-buy")

    # Bare numbers at or above this look like a stack
    MIN_BARE_STACK = 1000

    # With a bounty in the same message, smaller "won $x" amounts are the bounty
    BOUNTY_PAYOUT_THRESHOLD = 200

    def parse(self, text: str) -> ParsedEntities:
        message = text.strip().lower()
        entities = ParsedEntities()

        match = self.LEVEL_PATTERN.search(message)
        if match:
            entities.level_number = int(match.group(1))

        match = self.BLINDS_PATTERN.search(message)
        if match:
            entities.small_blind = parse_chip_value(match.group(1))
            entities.big_blind = parse_chip_value(match.group(2))
            if match.group(3):
                entities.ante = parse_chip_value(match.group(3))

        entities.bounty_collected = any(word in message for word in self.BOUNTY_WORDS)
        entities.took_rebuy = any(word in message for word in self.REBUY_WORDS)

        match = self.FINISH_PATTERN.search(message)
        if match:
            entities.finish_position = int(match.group(1))
            entities.is_eliminated = True
        elif ("busted" in message or "eliminated" in message
              or message == "out" or "i'm out" in message):
            entities.is_eliminated = True

        match = self.PAYOUT_PATTERN.search(message)
        if match:
            value = parse_chip_value(match.group(1))
            if not entities.bounty_collected or value > self.BOUNTY_PAYOUT_THRESHOLD:
                entities.payout_amount = value

        match = self.ENTRIES_PATTERN.search(message)
        if match:
            entities.total_entries = int(match.group(1))

        match = self.REMAINING_PATTERN.search(message) or self.FIELD_PATTERN.search(message)
        if match:
            entities.players_remaining = int(match.group(1))

        match = self.HAND_NOTE_PATTERN.search(message)
        if match:
            entities.hand_note = match.group(1).strip()

        # Notes often mention stacks of other players
        if entities.hand_note is None:
            entities.chip_count = self._extract_stack(message, entities)

        return entities

    def _extract_stack(self, message: str, entities: ParsedEntities) -> Optional[int]:
        for pattern in self.STACK_PATTERNS:
            match = pattern.search(message)
            if match:
                value = parse_chip_value(match.group(1))
                if value > 0:
                    return value

        taken = {
            entities.small_blind, entities.big_blind,
            entities.level_number, entities.total_entries,
            entities.players_remaining, entities.finish_position, entities.payout_amount,
        }
        for token in message.split():
            if "/" in token:
                continue
            cleaned = re.sub(r"^[^a-z0-9]+|[^a-z0-9]+$", "", token).replace(",", "")
            if not cleaned:
                continue
            if cleaned.isdigit():
                value = int(cleaned)
                if value >= self.MIN_BARE_STACK and value not in taken:
                    return value
            elif cleaned[-1] in "km":
                value = parse_chip_value(cleaned)
                if value > 0 and value not in taken:
                    return value
        return None

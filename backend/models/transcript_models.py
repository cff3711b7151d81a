"""
Data models for strip transcripts.
"""
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from core.dates import is_valid_date_key
from core.errors import MalformedDocumentError


@dataclass(frozen=True)
class Panel:
    """One panel of a strip with its dialogue lines in reading order."""
    index: int  # Panel number as published (1-based)
    dialogue: Tuple[str, ...] = ()

    @property
    def text(self) -> str:
        return " ".join(self.dialogue)

    def to_dict(self) -> Dict[str, Any]:
        return {"panel": self.index, "dialogue": list(self.dialogue)}


@dataclass(frozen=True)
class TranscriptDocument:
    """Complete transcript of one strip, keyed by its publication date."""
    date: str  # DateKey, YYYY-MM-DD
    panels: Tuple[Panel, ...] = ()

    @property
    def full_text(self) -> str:
        """Concatenated dialogue from all panels"""
        return " ".join(panel.text for panel in self.panels)

    def iter_lines(self):
        """Yield (panel, dialogue_index, line) for every dialogue line."""
        for panel in self.panels:
            for dialogue_index, line in enumerate(panel.dialogue):
                yield panel, dialogue_index, line

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date, "panels": [panel.to_dict() for panel in self.panels]}

    @classmethod
    def from_dict(cls, data: Any) -> "TranscriptDocument":
        """
        Validate and convert a transcript JSON object.

        Raises:
            MalformedDocumentError: if the date, panels or dialogue are missing
                or have the wrong shape.
        """
        if not isinstance(data, dict):
            raise MalformedDocumentError("Transcript is not an object")

        date = data.get("date")
        if not is_valid_date_key(date):
            raise MalformedDocumentError(f"Invalid or missing date: {date!r}", date=None)

        raw_panels = data.get("panels")
        if not isinstance(raw_panels, list):
            raise MalformedDocumentError("Missing panels", date=date)

        panels = []
        for position, raw_panel in enumerate(raw_panels, start=1):
            if not isinstance(raw_panel, dict):
                raise MalformedDocumentError(f"Panel {position} is not an object", date=date)
            dialogue = raw_panel.get("dialogue")
            if not isinstance(dialogue, list) or not all(isinstance(line, str) for line in dialogue):
                raise MalformedDocumentError(f"Panel {position} has no dialogue list", date=date)
            number = raw_panel.get("panel", position)
            if not isinstance(number, int) or isinstance(number, bool):
                raise MalformedDocumentError(f"Panel {position} has a non-integer number", date=date)
            panels.append(Panel(index=number, dialogue=tuple(dialogue)))

        return cls(date=date, panels=tuple(panels))

"""Daily note data models."""

from datetime import date, datetime

from pydantic import BaseModel, Field


class Note(BaseModel):
    """A single note entry."""

    when: datetime
    text: str
    tags: list[str] = Field(default_factory=list)

    @classmethod
    def now(cls, text: str) -> "Note":
        """Create a note stamped with the current local time."""
        return cls(when=datetime.now().astimezone(), text=text)


class DayLog(BaseModel):
    """All notes recorded for one calendar day, in insertion order."""

    date: date
    notes: list[Note] = Field(default_factory=list)

    def add_note(self, note: Note) -> None:
        """Append a note to the day."""
        self.notes.append(note)

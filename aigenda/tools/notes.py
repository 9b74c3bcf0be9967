"""Notes tool: create, read, update and delete daily notes."""

from datetime import date
from typing import Any

from aigenda.exceptions import StorageError, ToolExecutionError
from aigenda.models.notes import Note
from aigenda.services.storage import Storage
from aigenda.tools.base import Tool
from aigenda.tools.schema import (
    ActionSchema,
    DateType,
    IntegerType,
    ParameterSchema,
    ReturnSchema,
    StringType,
    ToolCategory,
    ToolExample,
    ToolSchema,
)
from aigenda.utils.logging import get_logger

logger = get_logger(__name__)

MAX_NOTE_LENGTH = 5000
DEFAULT_READ_LIMIT = 10
MAX_READ_LIMIT = 100

_DATE_PARAM = "Date in YYYY-MM-DD format"
_NOTE_ERRORS = ["Note not found", "Invalid date format", "Invalid index"]

NOTES_SCHEMA = ToolSchema(
    name="notes",
    description=(
        "Manage daily notes with full CRUD operations. Notes are automatically organized by date "
        "and stored locally as JSON files."
    ),
    category=ToolCategory.INTERNAL,
    actions=[
        ActionSchema(
            name="create",
            description="Add a new note to today's log or a specific date",
            parameters=[
                ParameterSchema(
                    name="text",
                    description="The content of the note",
                    param_type=StringType(max_length=MAX_NOTE_LENGTH),
                    required=True,
                ),
                ParameterSchema(
                    name="date",
                    description=f"{_DATE_PARAM} for the note",
                    param_type=DateType(),
                    default="today",
                ),
            ],
            returns=ReturnSchema(
                description="Confirmation message with the date the note was added",
                possible_errors=["Invalid date format", "Note text too long"],
            ),
        ),
        ActionSchema(
            name="read",
            description="Read notes from a specific date or recent notes across multiple days",
            parameters=[
                ParameterSchema(
                    name="date",
                    description=f"{_DATE_PARAM} to read notes from; omit for recent notes",
                    param_type=DateType(),
                ),
                ParameterSchema(
                    name="limit",
                    description="Maximum number of notes to return",
                    param_type=IntegerType(min=1, max=MAX_READ_LIMIT),
                    default=DEFAULT_READ_LIMIT,
                ),
            ],
            returns=ReturnSchema(
                description="List of notes with timestamps and content",
                possible_errors=["Invalid date format", "Invalid limit"],
            ),
        ),
        ActionSchema(
            name="update",
            description="Update an existing note by its position/index",
            parameters=[
                ParameterSchema(
                    name="date", description=f"{_DATE_PARAM} of the note", param_type=DateType(), required=True
                ),
                ParameterSchema(
                    name="index",
                    description="Position of the note to update (1-based index)",
                    param_type=IntegerType(min=1),
                    required=True,
                ),
                ParameterSchema(
                    name="text",
                    description="New content for the note",
                    param_type=StringType(max_length=MAX_NOTE_LENGTH),
                    required=True,
                ),
            ],
            returns=ReturnSchema(
                description="Confirmation message with the updated note details", possible_errors=_NOTE_ERRORS
            ),
        ),
        ActionSchema(
            name="delete",
            description="Delete a specific note by its position/index",
            parameters=[
                ParameterSchema(
                    name="date", description=f"{_DATE_PARAM} of the note", param_type=DateType(), required=True
                ),
                ParameterSchema(
                    name="index",
                    description="Position of the note to delete (1-based index)",
                    param_type=IntegerType(min=1),
                    required=True,
                ),
            ],
            returns=ReturnSchema(
                description="Confirmation message with the deleted note details", possible_errors=_NOTE_ERRORS
            ),
        ),
    ],
    examples=[
        ToolExample(
            description="Create a simple note for today",
            user_request="add a note about finishing the quarterly report",
            tool_call={"tool": "notes", "action": "create", "parameters": {"text": "Finished the quarterly report"}},
            expected_result="Note added successfully for 2025-09-28",
        ),
        ToolExample(
            description="Read today's notes",
            user_request="show me today's notes",
            tool_call={"tool": "notes", "action": "read", "parameters": {"date": "2025-09-28"}},
            expected_result="Notes for 2025-09-28:\n1. [20:45] Finished the quarterly report",
        ),
        ToolExample(
            description="Update a specific note",
            user_request="update my first note from today",
            tool_call={
                "tool": "notes",
                "action": "update",
                "parameters": {"date": "2025-09-28", "index": 1, "text": "Finished and sent the quarterly report"},
            },
            expected_result="Note 1 updated successfully for 2025-09-28",
        ),
    ],
)


class NotesTool(Tool):
    """CRUD over the day-log storage."""

    def __init__(self, storage: Storage):
        """Initialize with the storage backend notes are read from and written to."""
        self.storage = storage

    @property
    def name(self) -> str:
        return "notes"

    @property
    def description(self) -> str:
        return "Manage daily notes with full CRUD operations"

    def schema(self) -> ToolSchema:
        return NOTES_SCHEMA

    async def execute(self, action: str, parameters: Any) -> str:
        params = self._params(parameters)
        logger.debug(f"notes.{action} with {params}")

        try:
            match action:
                case "create":
                    return self.create_note(self._text(params), self._date(params, required=False))
                case "read":
                    return self.read_notes(self._date(params, required=False), self._limit(params))
                case "update":
                    return self.update_note(self._date(params), self._index(params), self._text(params))
                case "delete":
                    return self.delete_note(self._date(params), self._index(params))
        except StorageError as e:
            raise ToolExecutionError(self.name, str(e)) from e

        raise ToolExecutionError(self.name, f"Unknown action: {action}")

    def create_note(self, text: str, day: date | None) -> str:
        target = day or date.today()
        day_log = self.storage.load_day(target)
        day_log.add_note(Note.now(text))
        self.storage.save_day(day_log)
        return f"Note added successfully for {target.isoformat()}"

    def read_notes(self, day: date | None, limit: int | None) -> str:
        if day is not None:
            notes = self.storage.load_day(day).notes
            if limit is not None:
                notes = notes[:limit]
            if not notes:
                return f"No notes found for {day.isoformat()}"
            lines = [f"Notes for {day.isoformat()}:"]
            lines += [f"{i}. [{note.when:%H:%M}] {note.text}" for i, note in enumerate(notes, start=1)]
            return "\n".join(lines)

        max_count = limit or DEFAULT_READ_LIMIT
        lines = ["Recent notes:"]
        for day_log in reversed(self.storage.iter_days()):
            for note in reversed(day_log.notes):
                if len(lines) > max_count:
                    break
                lines.append(f"[{note.when:%Y-%m-%d %H:%M}] {note.text}")

        if len(lines) == 1:
            return "No notes found"
        return "\n".join(lines)

    def update_note(self, day: date, index: int, text: str) -> str:
        day_log = self.storage.load_day(day)
        if index > len(day_log.notes):
            raise ToolExecutionError(self.name, f"Note {index} not found for {day.isoformat()}")
        day_log.notes[index - 1] = Note.now(text)
        self.storage.save_day(day_log)
        return f"Note {index} updated successfully for {day.isoformat()}"

    def delete_note(self, day: date, index: int) -> str:
        day_log = self.storage.load_day(day)
        if index > len(day_log.notes):
            raise ToolExecutionError(self.name, f"Note {index} not found for {day.isoformat()}")
        removed = day_log.notes.pop(index - 1)
        self.storage.save_day(day_log)
        logger.debug(f"Deleted note {index} from {day.isoformat()}: {removed.text[:40]}")
        return f"Note {index} deleted successfully from {day.isoformat()}"

    def _params(self, parameters: Any) -> dict[str, Any]:
        if parameters is None:
            return {}
        if not isinstance(parameters, dict):
            raise ToolExecutionError(self.name, "Parameters must be a JSON object")
        return parameters

    def _text(self, params: dict[str, Any]) -> str:
        text = params.get("text")
        if not isinstance(text, str) or not text.strip():
            raise ToolExecutionError(self.name, "Missing text parameter")
        if len(text) > MAX_NOTE_LENGTH:
            raise ToolExecutionError(self.name, f"Note text too long (max {MAX_NOTE_LENGTH} characters)")
        return text

    def _date(self, params: dict[str, Any], required: bool = True) -> date | None:
        raw = params.get("date")
        if raw is None:
            if required:
                raise ToolExecutionError(self.name, "Missing date parameter")
            return None
        if raw == "today":
            return date.today()
        if not isinstance(raw, str):
            raise ToolExecutionError(self.name, f"Invalid date format: {raw!r} (expected YYYY-MM-DD)")
        try:
            return date.fromisoformat(raw)
        except ValueError as e:
            raise ToolExecutionError(self.name, f"Invalid date format: {raw!r} (expected YYYY-MM-DD)") from e

    def _index(self, params: dict[str, Any]) -> int:
        index = params.get("index")
        if index is None:
            raise ToolExecutionError(self.name, "Missing index parameter")
        if isinstance(index, bool) or not isinstance(index, int) or index < 1:
            raise ToolExecutionError(self.name, f"Invalid index: {index!r} (expected a positive integer)")
        return index

    def _limit(self, params: dict[str, Any]) -> int | None:
        limit = params.get("limit")
        if limit is None:
            return None
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_READ_LIMIT:
            raise ToolExecutionError(self.name, f"Invalid limit: {limit!r} (expected 1-{MAX_READ_LIMIT})")
        return limit

"""Detection of replies that announce more work."""

# Display forms, as the model is told to write them
CONTINUATION_SIGNALS = (
    "Let me also",
    "I'll also",
    "Next, I'll",
    "Additionally",
    "I need to",
    "I should also",
    "Now I'll",
    "Then I'll",
)

CONTINUATION_PHRASES = tuple(signal.lower() for signal in CONTINUATION_SIGNALS)


def should_continue(text: str) -> bool:
    """Return True if ``text`` contains any continuation phrase, ignoring case."""
    lowered = text.lower()
    return any(phrase in lowered for phrase in CONTINUATION_PHRASES)

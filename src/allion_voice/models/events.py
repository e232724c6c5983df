"""
Data-channel topic names.
"""


class Topic:
    """Topics delivered by the real-time transport."""
    DIAGNOSTIC_REPORT = "diagnostic_report"
    CHAT = "lk.chat"
    TRANSCRIPTION = "lk.transcription"


# Topics that carry the conversational transcript
TRANSCRIPT_TOPICS = (Topic.CHAT, Topic.TRANSCRIPTION)

# Transport lifecycle events, never dispatched to topic handlers
LIFECYCLE_EVENTS = {"connect", "disconnect", "connect_error", "ready"}

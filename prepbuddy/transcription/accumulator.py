"""Running transcript built from successive batch transcriptions."""

import logging

logger = logging.getLogger(__name__)


class TranscriptAccumulator:
    """Merges partial transcripts into one answer string.

    Text is only ever appended; ordering follows the order in which batches
    complete, which the recording session keeps equal to capture order.
    """

    def __init__(self):
        self._text = ""
        self.segments = 0

    @property
    def text(self) -> str:
        return self._text

    def append(self, text: str) -> bool:
        """Append a partial transcript.

        Returns:
            True if the transcript changed. Blank text is ignored.
        """
        cleaned = (text or "").strip()
        if not cleaned:
            logger.debug("Ignoring blank transcription")
            return False

        current = self._text.strip()
        self._text = cleaned if not current else f"{current} {cleaned}"
        self.segments += 1
        logger.debug(f"Transcript now {len(self._text)} chars after {self.segments} segments")
        return True

    def reset(self) -> None:
        self._text = ""
        self.segments = 0

    def __str__(self) -> str:
        return self._text

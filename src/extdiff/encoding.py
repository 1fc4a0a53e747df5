"""Per-file character encoding repair for parsed diffs."""

import codecs
import logging
from typing import Dict, Optional

from charset_normalizer import from_bytes

from .models import Diff, DiffFile, DiffLineType, raw_bytes

logger = logging.getLogger(__name__)

UTF8 = "utf-8"
_UTF8_BOM = codecs.BOM_UTF8
_CANONICAL = {"utf-8", "ascii"}


def detect_encoding(data: bytes, fallback: Optional[str] = None) -> Optional[str]:
    """Guess the encoding of ``data``.

    Valid UTF-8 always wins; otherwise the best charset_normalizer match or
    ``fallback`` is returned. None when nothing fits.
    """
    if data.startswith(_UTF8_BOM):
        return UTF8
    try:
        data.decode("utf-8")
        return UTF8
    except UnicodeDecodeError:
        pass

    best = from_bytes(data).best()
    if best is not None:
        return best.encoding
    return fallback


def _canonical_name(encoding: str) -> Optional[str]:
    try:
        return codecs.lookup(encoding).name
    except LookupError:
        return None


class EncodingNormalizer:
    """Re-decodes each file's lines using one detected encoding per line category.

    Context, added and deleted lines are detected separately, which cannot
    tell mixed encodings apart within one category of one file.
    """

    CATEGORIES = (DiffLineType.PLAIN, DiffLineType.ADD, DiffLineType.DEL)

    def __init__(self, fallback_encoding: Optional[str] = None):
        self.fallback_encoding = fallback_encoding

    def normalize(self, diff: Diff) -> Diff:
        for file in diff.files:
            self.normalize_file(file)
        return diff

    def normalize_file(self, file: DiffFile) -> None:
        buffers: Dict[DiffLineType, bytearray] = {
            category: bytearray() for category in self.CATEGORIES
        }
        for line in file.iter_lines():
            category = line.type.category
            if category is None:
                continue
            buffers[category] += raw_bytes(line.text)
            buffers[category] += b"\n"

        decoders: Dict[DiffLineType, str] = {}
        for category, buffer in buffers.items():
            if not buffer:
                continue
            detected = detect_encoding(bytes(buffer), self.fallback_encoding)
            if detected is None:
                continue
            codec = _canonical_name(detected)
            if codec is None or codec in _CANONICAL:
                continue
            decoders[category] = codec
            logger.debug(
                "Re-decoding lines",
                extra={"path": file.name, "category": category.value, "encoding": codec},
            )

        if not decoders:
            return

        for line in file.iter_lines():
            codec = decoders.get(line.type.category) if line.type.category else None
            if codec is None:
                continue
            try:
                decoded = raw_bytes(line.text).decode(codec)
            except UnicodeError:
                continue
            line.content = line.prefix + decoded

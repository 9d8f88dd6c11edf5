"""
Split oversized synthesis input into provider-sized pieces.

``split_text_into_chunks`` cuts plain text for the bounded synthesis call;
``split_ssml_into_chunks`` cuts SSML documents into standalone documents
for callers that need markup fragments.
"""
import re
from typing import Iterator, List

from narrator.config import MAX_SSML_LENGTH
from narrator.services.ssml_converter import SPEAK_OPEN, SPEAK_CLOSE

_BREAK_MARKER = re.compile(r'(<break time="[0-9.]+s"/>)')
_SENTENCE_END = re.compile(r'(?<=[.!?…])\s+')


def _size(text: str) -> int:
    # The provider caps input in UTF-8 bytes
    return len(text.encode('utf-8'))


def split_text_into_chunks(text: str, max_length: int = MAX_SSML_LENGTH) -> List[str]:
    """
    Split plain text into pieces of at most ``max_length`` UTF-8 bytes.

    Sentences are packed greedily. A sentence over the limit is cut at
    whitespace, and a single word over the limit is cut between characters.
    Blank input gives no chunks.
    """
    text = (text or '').strip()
    if not text:
        return []
    if _size(text) <= max_length:
        return [text]

    chunks: List[str] = []
    current = ''
    for piece in _text_pieces(text, max_length):
        candidate = f'{current} {piece}' if current else piece
        if _size(candidate) <= max_length:
            current = candidate
        else:
            chunks.append(current)
            current = piece

    if current:
        chunks.append(current)
    return chunks


def _text_pieces(text: str, max_length: int) -> Iterator[str]:
    for sentence in _SENTENCE_END.split(text):
        if _size(sentence) <= max_length:
            yield sentence
            continue
        for word in sentence.split():
            if _size(word) <= max_length:
                yield word
            else:
                yield from _cut_word(word, max_length)


def _cut_word(word: str, max_length: int) -> Iterator[str]:
    piece = ''
    for char in word:
        if piece and _size(piece + char) > max_length:
            yield piece
            piece = char
        else:
            piece += char
    if piece:
        yield piece


def split_ssml_into_chunks(ssml: str, max_length: int = MAX_SSML_LENGTH) -> List[str]:
    """
    Split an SSML document into standalone ``<speak>`` documents.

    Fragments between pause markers are packed greedily so every chunk
    stays within ``max_length`` characters including its ``<speak>``
    wrapper. A single fragment longer than the limit cannot be split
    safely and becomes a chunk of its own.

    Args:
        ssml: Full SSML document
        max_length: Largest chunk size in characters

    Returns:
        Ordered list of SSML documents
    """
    if len(ssml) <= max_length:
        return [ssml]

    content = ssml.strip()
    if content.startswith(SPEAK_OPEN):
        content = content[len(SPEAK_OPEN):]
    if content.endswith(SPEAK_CLOSE):
        content = content[:-len(SPEAK_CLOSE)]

    wrapper = len(SPEAK_OPEN) + len(SPEAK_CLOSE)
    chunks: List[str] = []
    current: List[str] = []
    current_length = 0

    for fragment in _fragments(content):
        if current and current_length + len(fragment) + wrapper > max_length:
            chunks.append(_wrap(current))
            current = []
            current_length = 0
        current.append(fragment)
        current_length += len(fragment)

    if current:
        chunks.append(_wrap(current))

    return chunks


def _fragments(content: str) -> List[str]:
    """Cut after every pause marker so each fragment ends on a pause."""
    pieces = _BREAK_MARKER.split(content)
    fragments = []
    for i in range(0, len(pieces), 2):
        fragment = pieces[i] + (pieces[i + 1] if i + 1 < len(pieces) else '')
        if fragment:
            fragments.append(fragment)
    return fragments


def _wrap(fragments: List[str]) -> str:
    return SPEAK_OPEN + ''.join(fragments) + SPEAK_CLOSE

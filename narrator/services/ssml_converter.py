"""
HTML article content to SSML conversion.
"""
import logging
from typing import List, Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

logger = logging.getLogger(__name__)

SPEAK_OPEN = '<speak>'
SPEAK_CLOSE = '</speak>'

BREAK_SHORT = '<break time="0.3s"/>'
BREAK_MEDIUM = '<break time="0.5s"/>'
BREAK_LONG = '<break time="0.8s"/>'
BREAK_TITLE = '<break time="1s"/>'

HEADINGS = {'h1', 'h2', 'h3', 'h4', 'h5', 'h6'}


def escape_xml(text: Optional[str]) -> str:
    """Escape the five XML special characters."""
    if text is None:
        return ''
    return (
        text.replace('&', '&amp;')
        .replace('<', '&lt;')
        .replace('>', '&gt;')
        .replace('"', '&quot;')
        .replace("'", '&apos;')
    )


def html_to_plain_text(html_content: Optional[str]) -> str:
    """Plain-text rendering of an HTML fragment with whitespace collapsed."""
    if not html_content:
        return ''
    soup = BeautifulSoup(html_content, 'html.parser')
    return _collapse(soup.get_text(' '))


def convert_to_ssml(html_content: Optional[str], title: Optional[str] = None) -> str:
    """
    Convert HTML article content to SSML.

    The title, when given, is read first with strong emphasis. Paragraphs,
    headings, lists and quotes are separated with pauses sized to the
    element. Never raises: if conversion fails the plain text of the HTML
    is returned inside a bare ``<speak>`` document.

    Args:
        html_content: HTML body of the article
        title: Article title

    Returns:
        SSML document string
    """
    try:
        soup = BeautifulSoup(html_content or '', 'html.parser')
        parts: List[str] = [SPEAK_OPEN]

        if title and title.strip():
            parts.append(f'<emphasis level="strong">{escape_xml(title)}</emphasis>')
            parts.append(BREAK_TITLE)

        root = soup.body if soup.body is not None else soup
        _process_children(root, parts)

        parts.append(SPEAK_CLOSE)
        return ''.join(parts)

    except Exception as e:
        logger.error('Failed to convert HTML to SSML: %s', e, exc_info=True)
        return _fallback_ssml(html_content)


def _fallback_ssml(html_content: Optional[str]) -> str:
    try:
        text = html_to_plain_text(html_content)
    except Exception:
        logger.warning('Plain-text extraction failed, reading raw content')
        text = _collapse(html_content or '')
    return f'{SPEAK_OPEN}{escape_xml(text)}{SPEAK_CLOSE}'


def _collapse(text: str) -> str:
    return ' '.join(text.split())


def _text_of(element: Tag) -> str:
    return _collapse(element.get_text(' '))


def _emphasis(level: str, text: str) -> str:
    return f'<emphasis level="{level}">{escape_xml(text)}</emphasis>'


def _process_children(element: Tag, parts: List[str]):
    for child in element.children:
        if isinstance(child, PreformattedString):
            continue
        if isinstance(child, NavigableString):
            text = _collapse(str(child))
            if text:
                parts.append(escape_xml(text))
        elif isinstance(child, Tag):
            _process_element(child, parts)


def _process_element(element: Tag, parts: List[str]):
    tag_name = (element.name or '').lower()

    if tag_name in HEADINGS:
        parts.append(BREAK_MEDIUM)
        parts.append(_emphasis('moderate', _text_of(element)))
        parts.append(BREAK_LONG)

    elif tag_name == 'p':
        parts.append(escape_xml(_text_of(element)))
        parts.append(BREAK_MEDIUM)

    elif tag_name == 'br':
        parts.append(BREAK_SHORT)

    elif tag_name in ('strong', 'b'):
        parts.append(_emphasis('moderate', _text_of(element)))

    elif tag_name in ('em', 'i'):
        parts.append(_emphasis('reduced', _text_of(element)))

    elif tag_name in ('ul', 'ol'):
        for item in element.find_all('li', recursive=False):
            _append_list_item(item, parts)
        parts.append(BREAK_MEDIUM)

    elif tag_name == 'li':
        _append_list_item(element, parts)

    elif tag_name == 'blockquote':
        parts.append(BREAK_MEDIUM)
        parts.append(f'<prosody rate="slow">{escape_xml(_text_of(element))}</prosody>')
        parts.append(BREAK_MEDIUM)

    elif tag_name in ('script', 'style'):
        return

    elif element.find(True) is None:
        text = _text_of(element)
        if text:
            parts.append(escape_xml(text))

    else:
        _process_children(element, parts)


def _append_list_item(item: Tag, parts: List[str]):
    parts.append(f'• {escape_xml(_text_of(item))}')
    parts.append(BREAK_SHORT)

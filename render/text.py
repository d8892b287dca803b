"""
Plain-text renderer for fetched responses.
"""
import sys

ENTITIES = (
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&apos;", "'"),
    # last, so "&amp;lt;" stays "&lt;"
    ("&amp;", "&"),
)


def strip_tags(content: str) -> str:
    out = []
    in_tag = False
    for char in content:
        if char == "<":
            in_tag = True
        elif char == ">":
            in_tag = False
        elif not in_tag:
            out.append(char)
    return "".join(out)


def decode_entities(content: str) -> str:
    for entity, char in ENTITIES:
        content = content.replace(entity, char)
    return content


def render(response) -> str:
    """Return the text a reader sees: source verbatim for view-source, otherwise de-tagged text."""
    if response.scheme == "view-source":
        return response.body
    return decode_entities(strip_tags(response.body))


def show(response, stream=None):
    stream = stream if stream is not None else sys.stdout
    stream.write(render(response))
    stream.flush()

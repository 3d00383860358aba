from .markdown import ImagePathResolver, bounds_key, render_markdown
from .page_data import deserialize_page, serialize_page
from .transcript import render_transcript, resolve_marker

"""HTML pages served by the upload server."""
from typing import Sequence

from jinja2 import Environment, select_autoescape

from upload_server.schemas import Filedata

_ENV = Environment(autoescape=select_autoescape(default_for_string=True))

BASE_STYLE = """
<style>
    body { font-family: sans-serif; max-width: 720px; margin: 40px auto; padding: 0 16px; }
    nav a { margin-right: 16px; }
    ul.files li { padding: 4px 0; }
    .muted { color: #777; }
</style>
"""

FILE_DISPLAY_TEMPLATE = _ENV.from_string("""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Stored files</title>
    {{ style | safe }}
</head>
<body>
    <nav><a href="/">Files</a><a href="/upload">Upload</a></nav>
    <h1>Stored files</h1>
    {% if files %}
    <ul class="files">
        {% for file in files %}
        <li><a href="/download?filename={{ file.filename | urlencode }}">{{ file.filename }}</a></li>
        {% endfor %}
    </ul>
    {% else %}
    <p class="muted">No files uploaded yet.</p>
    {% endif %}
</body>
</html>
""")

UPLOAD_TEMPLATE = _ENV.from_string("""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Upload files</title>
    {{ style | safe }}
</head>
<body>
    <nav><a href="/">Files</a><a href="/upload">Upload</a></nav>
    <h1>Upload files</h1>
    <form action="/upload" method="post" enctype="multipart/form-data">
        <input type="file" name="file" multiple required>
        <button type="submit">Upload</button>
    </form>
</body>
</html>
""")

NOT_FOUND_TEMPLATE = _ENV.from_string("""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>404 Not Found</title>
    {{ style | safe }}
</head>
<body>
    <h1>404</h1>
    <p>The page you were looking for does not exist.</p>
    <p><a href="/">Back to the file list</a></p>
</body>
</html>
""")


def render_file_display(files: Sequence[Filedata]) -> str:
    return FILE_DISPLAY_TEMPLATE.render(files=files, style=BASE_STYLE)


def render_upload() -> str:
    return UPLOAD_TEMPLATE.render(style=BASE_STYLE)


def render_not_found() -> str:
    return NOT_FOUND_TEMPLATE.render(style=BASE_STYLE)

"""
Index document rendering.

Each gallery directory gets one self-contained ``index.html``: sidebar links
to the parent and subdirectories, and a grid of images that open in a
CSS-only lightbox. Style and script are inline so the page needs no assets.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

from jinja2 import Environment

from imgarchive.config import GalleryConfig
from imgarchive.core.scanner import DirectoryListing

log = logging.getLogger(__name__)

_jinja_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)


@dataclass
class SubDirLink:
    name: str
    link: str


INDEX_TEMPLATE = _jinja_env.from_string("""\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{{ title }}</title>
  <style>
    * { box-sizing: border-box; margin: 0; padding: 0; }
    body { font-family: Arial, sans-serif; display: flex; height: 100vh; }
    .sidebar { width: 220px; min-width: 150px; max-width: 400px; background: #f0f0f0;
               border-right: 1px solid #ccc; padding: 20px; overflow-y: auto; }
    .sidebar ul { list-style: none; }
    .sidebar li { margin-bottom: 10px; }
    .sidebar a { text-decoration: none; color: #333; display: block; padding: 5px 10px; border-radius: 4px; }
    .sidebar a:hover, .sidebar a.active { background-color: #ddd; }
    .content { flex: 1; padding: 20px; overflow-y: auto; }
    .content h1 { margin-bottom: 15px; }
    .grid { display: grid; grid-template-columns: repeat(auto-fill, minmax({{ cell }}px, 1fr)); grid-gap: 15px; }
    .grid img { width: 100%; height: 100%; object-fit: cover; display: block; cursor: pointer; }
    .modal { display: none; position: fixed; top: 0; left: 0; width: 100%; height: 100%;
             background: rgba(0, 0, 0, 0.8); justify-content: center; align-items: center; }
    .modal img { max-width: 95vw; max-height: 95vh; object-fit: contain; }
    .modal:target { display: flex; }
  </style>
</head>
<body>
{% if subdirs %}
  <div class="sidebar">
    <ul>
{% for sub in subdirs %}
      <li><a href="{{ sub.link|urlencode }}/{{ index_name|urlencode }}">{{ sub.name }}</a></li>
{% endfor %}
    </ul>
  </div>
{% endif %}
  <div class="content">
    <h1>{{ title }}</h1>
{% if images %}
    <div class="grid">
{% for image in images %}
      <a class="thumb" href="#modal-{{ loop.index }}" title="{{ image }}">
{% if thumbs %}
        <img loading="lazy" src="{{ thumb_dir|urlencode }}/{{ image|urlencode }}" alt="{{ image }}">
{% else %}
        <img loading="lazy" src="{{ image|urlencode }}" alt="{{ image }}">
{% endif %}
      </a>
      <div id="modal-{{ loop.index }}" class="modal">
        <img src="{{ image|urlencode }}" alt="{{ image }}">
      </div>
{% endfor %}
    </div>
{% else %}
    <p>No images in this folder.</p>
{% endif %}
  </div>
  <script>
    document.querySelectorAll('.sidebar a').forEach(function (link, _, links) {
      link.addEventListener('click', function () {
        links.forEach(function (other) { other.classList.remove('active'); });
        link.classList.add('active');
      });
    });
    document.addEventListener('DOMContentLoaded', function () {
      var thumbs = Array.from(document.querySelectorAll('.grid a.thumb'));
      document.querySelectorAll('.modal').forEach(function (modal) {
        modal.addEventListener('click', function (e) {
          if (e.target === modal) { window.location.hash = ''; }
        });
      });
      document.addEventListener('keydown', function (e) {
        var current = window.location.hash;
        if (!current || !thumbs.length) { return; }
        var idx = thumbs.findIndex(function (a) { return a.getAttribute('href') === current; });
        if (idx < 0) { return; }
        if (e.key === 'ArrowRight') {
          window.location.hash = thumbs[(idx + 1) % thumbs.length].getAttribute('href');
        } else if (e.key === 'ArrowLeft') {
          window.location.hash = thumbs[(idx - 1 + thumbs.length) % thumbs.length].getAttribute('href');
        } else if (e.key === 'Escape') {
          window.location.hash = '';
        }
      });
    });
  </script>
</body>
</html>
""")


def has_parent_link(path: str) -> bool:
    parent = os.path.dirname(path)
    return parent not in (path, "", ".", os.sep)


def sidebar_links(listing: DirectoryListing) -> List[SubDirLink]:
    links = []
    if has_parent_link(listing.path):
        links.append(SubDirLink(name="..", link=".."))
    links.extend(SubDirLink(name=name, link=name) for name in listing.subdirs)
    return links


def render_index(listing: DirectoryListing, config: GalleryConfig) -> str:
    return INDEX_TEMPLATE.render(
        title=listing.name,
        subdirs=sidebar_links(listing),
        images=listing.images,
        thumbs=listing.thumbnails,
        thumb_dir=config.thumb_dir_name,
        index_name=config.index_name,
        cell=config.thumb_size[0],
    )


def write_index(listing: DirectoryListing, config: GalleryConfig) -> Path:
    """Render and overwrite the index document inside ``listing.path``."""
    out_path = Path(listing.path) / config.index_name
    out_path.write_text(render_index(listing, config), encoding="utf-8")
    log.debug("Wrote %s", out_path)
    return out_path

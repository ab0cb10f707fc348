"""Export packaging: the current site and its SEO files as a zip download."""
from __future__ import annotations

import io
import re
import zipfile
from dataclasses import dataclass
from typing import Optional

from sitesmith.constants import DEFAULT_PROJECT_NAME
from sitesmith.services.generation.config import SeoArtifacts
from sitesmith.services.generation.errors import ContentError

# Fixed timestamp so identical content yields identical archives
_ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)


@dataclass(frozen=True)
class ExportBundle:
    filename: str
    data: bytes


def export_filename(project_name: Optional[str]) -> str:
    stem = re.sub(r'[^a-z0-9]+', '-', (project_name or '').lower()).strip('-')
    return f"{stem or DEFAULT_PROJECT_NAME}.zip"


def build_export_archive(markup: str, seo: Optional[SeoArtifacts], project_name: Optional[str] = None) -> ExportBundle:
    """Zip ``index.html`` plus ``robots.txt``/``sitemap.xml`` when available."""
    if not markup:
        raise ContentError("There is no generated site to export yet.")

    files = [("index.html", markup)]
    if seo is not None:
        files.append(("robots.txt", seo.crawler_rules))
        files.append(("sitemap.xml", seo.site_map))

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
        for name, content in files:
            info = zipfile.ZipInfo(name, date_time=_ZIP_DATE_TIME)
            info.compress_type = zipfile.ZIP_DEFLATED
            archive.writestr(info, content)
    return ExportBundle(filename=export_filename(project_name), data=buffer.getvalue())


__all__ = ['ExportBundle', 'build_export_archive', 'export_filename']

"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
import os
from pathlib import Path

from .converter import convert_adf
from .scanner import PublishDocument

LOGGER = logging.getLogger(__name__)


class LocalConverter:
    """
    Transforms documents into Confluence Storage Format (CSF) files on the local disk, without calling the API.

    :param out_dir: File system directory to write generated CSF documents to; defaults to the directory of each source.
    """

    out_dir: Path | None

    def __init__(self, out_dir: Path | None = None) -> None:
        self.out_dir = out_dir

    def convert(self, document: PublishDocument) -> Path:
        """
        Saves the document as Confluence Storage Format XHTML to the local disk.

        :returns: Path to the generated file.
        """

        content = convert_adf(document.tree)
        out_dir = self.out_dir or document.path.parent
        out_path = out_dir / document.path.with_suffix(".csf").name
        os.makedirs(out_path.parent, exist_ok=True)
        with open(out_path, "w", encoding="utf-8") as f:
            f.write(content)

        LOGGER.info("Saved Confluence Storage Format document: %s", out_path)
        return out_path

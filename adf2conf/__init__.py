"""
Publish Atlassian Document Format content to Confluence wiki.

Converts Atlassian Document Format (ADF) document trees into the Confluence Storage Format (XHTML), and invokes
Confluence API endpoints to upload attachments and content, reconciling the differences between Confluence Cloud
and Confluence Data Center.
"""

from ._version import __version__

__all__ = ["__version__"]

__author__ = "Levente Hunyadi"
__copyright__ = "Copyright 2022-2026, Levente Hunyadi"
__license__ = "MIT"
__maintainer__ = "Levente Hunyadi"
__status__ = "Production"

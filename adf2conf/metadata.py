"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

from dataclasses import dataclass

from .environment import ConfluenceDeployment


@dataclass(frozen=True)
class ConfluenceSiteMetadata:
    """
    Data associated with a Confluence wiki site.

    :param domain: Confluence organization domain (e.g. `levente-hunyadi.atlassian.net`).
    :param deployment: Whether the site is hosted in Confluence Cloud or Confluence Data Center.
    :param space_key: Confluence space key for pages (e.g. `~hunyadi` or `INST`).
    """

    domain: str
    deployment: ConfluenceDeployment
    space_key: str | None = None

    @property
    def base_path(self) -> str:
        "Path prefix of wiki pages on the site."

        if self.deployment is ConfluenceDeployment.CLOUD:
            return "/wiki/"
        else:
            return "/"

    def page_url(self, page_id: str, space_key: str | None = None) -> str:
        "Human-readable URL of a Confluence page."

        space_key = space_key or self.space_key
        if space_key:
            return f"https://{self.domain}{self.base_path}spaces/{space_key}/pages/{page_id}"
        else:
            return f"https://{self.domain}{self.base_path}pages/viewpage.action?pageId={page_id}"


@dataclass(frozen=True)
class ConfluencePageMetadata:
    """
    Data associated with a Confluence page.

    :param page_id: Confluence page ID.
    :param space_key: Confluence space key.
    :param title: Document title.
    """

    page_id: str
    space_key: str | None
    title: str

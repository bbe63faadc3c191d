"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import enum
import os
from typing import overload


class ArgumentError(ValueError):
    "Raised when wrong arguments are passed to a function call."


class PageError(ValueError):
    "Raised in case there is an issue with a Confluence page."


class ConfluenceError(RuntimeError):
    "Raised when a Confluence API call fails."


class ConfluenceHTTPError(ConfluenceError):
    """
    Raised when Confluence REST API responds with an HTTP error status.

    :param status: HTTP status code.
    :param body: Response body, truncated to a length suitable for diagnostics.
    """

    MAX_BODY_LENGTH = 1000
    MAX_MESSAGE_LENGTH = 200

    status: int
    body: str

    def __init__(self, status: int, body: str) -> None:
        body = body or "(empty response)"
        self.status = status
        self.body = body[: self.MAX_BODY_LENGTH]
        super().__init__(f"Received a {status}: {body[: self.MAX_MESSAGE_LENGTH]}")


@enum.unique
class ConfluenceDeployment(enum.Enum):
    """
    Deployment variant of the Confluence server.

    Confluence Cloud and Confluence Data Center (or Server) expose the same classic REST API under a different URL
    prefix, but differ in supported HTTP verbs (e.g. attachment upload) and in the structure of page URLs.
    """

    CLOUD = "cloud"
    DATA_CENTER = "datacenter"


CLOUD_URL_SUFFIX = "/wiki/rest"
DATA_CENTER_URL_SUFFIX = "/rest"


@overload
def _validate_domain(domain: str) -> str: ...


@overload
def _validate_domain(domain: str | None) -> str | None: ...


def _validate_domain(domain: str | None) -> str | None:
    if domain is None:
        return None

    if domain.startswith(("http://", "https://")) or domain.endswith("/"):
        raise ArgumentError("Confluence domain looks like a URL; only host name required")

    return domain


def _validate_url_suffix(url_suffix: str) -> str:
    if not url_suffix.startswith("/") or url_suffix.endswith("/"):
        raise ArgumentError("Confluence URL suffix must start with a '/' and must not end with a '/'")

    return url_suffix


def _parse_deployment(value: str | None) -> ConfluenceDeployment | None:
    if value is None:
        return None

    match value.lower():
        case "cloud":
            return ConfluenceDeployment.CLOUD
        case "datacenter" | "data-center" | "server":
            return ConfluenceDeployment.DATA_CENTER
        case _:
            raise ArgumentError(f"invalid Confluence deployment: {value}; expected: `cloud` or `datacenter`")


def _parse_timeout(value: str | None) -> float | None:
    if not value:
        return None

    try:
        timeout = float(value)
    except ValueError:
        raise ArgumentError(f"invalid timeout: {value}") from None

    if timeout <= 0:
        raise ArgumentError(f"timeout must be positive; got: {value}")
    return timeout


def infer_deployment(url_suffix: str) -> ConfluenceDeployment:
    "Infers the deployment variant from the REST API URL suffix."

    if url_suffix == CLOUD_URL_SUFFIX:
        return ConfluenceDeployment.CLOUD
    else:
        return ConfluenceDeployment.DATA_CENTER


class ConnectionProperties:
    """
    Properties related to connecting to Confluence.

    :param domain: Domain name for Confluence site, e.g. `markdown-to-confluence.atlassian.net`.
    :param url_suffix: Path prefix of the REST API, e.g. `/wiki/rest` (Cloud) or `/rest` (Data Center).
    :param deployment: Deployment variant; inferred from the URL suffix when omitted.
    :param user_name: Confluence user name (e-mail address for Cloud). Omit to authenticate with a personal access token.
    :param api_key: Confluence API token, password or personal access token.
    :param space_key: Confluence space key for pages to be published.
    :param headers: Additional HTTP headers to pass to Confluence REST API calls.
    :param timeout: Deadline in seconds for each HTTP request.
    """

    domain: str
    url_suffix: str
    deployment: ConfluenceDeployment
    user_name: str | None
    api_key: str
    space_key: str | None
    headers: dict[str, str] | None
    timeout: float | None

    def __init__(
        self,
        *,
        domain: str | None = None,
        url_suffix: str | None = None,
        deployment: ConfluenceDeployment | str | None = None,
        user_name: str | None = None,
        api_key: str | None = None,
        space_key: str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> None:
        opt_domain = domain or os.getenv("CONFLUENCE_DOMAIN")
        opt_url_suffix = url_suffix or os.getenv("CONFLUENCE_URL_SUFFIX")
        opt_user_name = user_name or os.getenv("CONFLUENCE_USER_NAME")
        opt_api_key = api_key or os.getenv("CONFLUENCE_API_KEY")
        opt_space_key = space_key or os.getenv("CONFLUENCE_SPACE_KEY")
        opt_timeout = timeout if timeout is not None else _parse_timeout(os.getenv("CONFLUENCE_TIMEOUT"))

        if isinstance(deployment, ConfluenceDeployment):
            opt_deployment: ConfluenceDeployment | None = deployment
        else:
            opt_deployment = _parse_deployment(deployment or os.getenv("CONFLUENCE_DEPLOYMENT"))

        if not opt_api_key:
            raise ArgumentError("Confluence API key not specified")
        if not opt_domain:
            raise ArgumentError("Confluence domain not specified")

        if opt_url_suffix is None:
            if opt_deployment is ConfluenceDeployment.DATA_CENTER:
                opt_url_suffix = DATA_CENTER_URL_SUFFIX
            else:
                opt_url_suffix = CLOUD_URL_SUFFIX
        opt_url_suffix = _validate_url_suffix(opt_url_suffix)

        if opt_deployment is None:
            opt_deployment = infer_deployment(opt_url_suffix)

        self.domain = _validate_domain(opt_domain)
        self.url_suffix = opt_url_suffix
        self.deployment = opt_deployment
        self.user_name = opt_user_name
        self.api_key = opt_api_key
        self.space_key = opt_space_key
        self.headers = headers
        self.timeout = opt_timeout

    @property
    def base_url(self) -> str:
        "URL that REST API paths such as `/api/content` are relative to."

        return f"https://{self.domain}{self.url_suffix}"

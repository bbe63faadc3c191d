"""
Publish Atlassian Document Format content to Confluence wiki.

Reads Atlassian Document Format (ADF) documents, converts them into the Confluence Storage Format (XHTML), and invokes
Confluence API endpoints to upload attachments and content.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import argparse
import logging
import os.path
import sys
import typing
from io import StringIO
from pathlib import Path
from typing import Any, Iterable, Sequence

from . import __version__
from .adf import DocumentError
from .environment import ArgumentError, ConnectionProperties
from .extra import override
from .scanner import PublishDocument, read_document

LOGGER = logging.getLogger(__name__)


class Arguments(argparse.Namespace):
    paths: list[Path]
    page_id: str | None
    domain: str | None
    url_suffix: str | None
    deployment: str | None
    username: str | None
    api_key: str | None
    space: str | None
    loglevel: str
    headers: dict[str, str] | None
    timeout: float | None
    local: bool


class KwargsAppendAction(argparse.Action):
    """Append key-value pairs to a dictionary."""

    @override
    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: None | str | Sequence[Any],
        option_string: str | None = None,
    ) -> None:
        try:
            d = dict(map(lambda x: x.split("=", 1), typing.cast(Sequence[str], values)))
        except ValueError:
            raise argparse.ArgumentError(
                self,
                f'Could not parse argument "{values}". It should follow the format: k1=v1 k2=v2 ...',
            ) from None
        setattr(namespace, self.dest, d)


class PositionalOnlyHelpFormatter(argparse.HelpFormatter):
    def _format_usage(
        self,
        usage: str | None,
        actions: Iterable[argparse.Action],
        groups: Iterable[argparse._MutuallyExclusiveGroup],  # pyright: ignore[reportPrivateUsage]
        prefix: str | None,
    ) -> str:
        # filter only positional arguments
        positional_actions = [a for a in actions if not a.option_strings]

        # format usage string with only positional arguments
        usage_str = super()._format_usage(usage, positional_actions, groups, prefix).rstrip()

        # insert [OPTIONS] as a placeholder for all options (detailed below)
        usage_str += " [OPTIONS]\n"

        return usage_str


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(formatter_class=PositionalOnlyHelpFormatter)
    parser.prog = os.path.basename(os.path.dirname(__file__))
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument("paths", nargs="+", type=Path, help="Path to ADF document (JSON) files to convert and publish.")
    parser.add_argument(
        "--page-id",
        dest="page_id",
        help="Confluence page ID to publish to. Overrides the page ID in the document; useful with a single bare ADF document.",
    )
    parser.add_argument("-d", "--domain", help="Confluence organization domain.")
    parser.add_argument(
        "--url-suffix",
        dest="url_suffix",
        help="Path prefix of Confluence REST API (default: '/wiki/rest' for Cloud, '/rest' for Data Center).",
    )
    parser.add_argument(
        "--deployment",
        choices=["cloud", "datacenter"],
        help="Confluence deployment variant. If omitted, inferred from the URL suffix.",
    )
    parser.add_argument("-u", "--username", help="Confluence user name. If omitted, the API key is used as a personal access token.")
    parser.add_argument(
        "-a",
        "--api-key",
        dest="api_key",
        help="Confluence API key. Refer to documentation how to obtain one.",
    )
    parser.add_argument(
        "-s",
        "--space",
        help="Confluence space key for pages to be published. Used in page URLs.",
    )
    parser.add_argument(
        "-l",
        "--loglevel",
        choices=[
            logging.getLevelName(level).lower()
            for level in (
                logging.DEBUG,
                logging.INFO,
                logging.WARN,
                logging.ERROR,
                logging.CRITICAL,
            )
        ],
        default=logging.getLevelName(logging.INFO),
        help="Use this option to set the log verbosity.",
    )
    parser.add_argument(
        "--headers",
        nargs="+",
        required=False,
        action=KwargsAppendAction,
        metavar="KEY=VALUE",
        help="Apply custom headers to all Confluence API requests.",
    )
    parser.add_argument("--timeout", type=float, help="Deadline in seconds for each Confluence API request.")
    parser.add_argument(
        "--local",
        action="store_true",
        default=False,
        help="Write XHTML-based Confluence Storage Format files locally without invoking Confluence API.",
    )
    return parser


def get_help() -> str:
    parser = get_parser()
    with StringIO() as buf:
        parser.print_help(file=buf)
        return buf.getvalue()


def _read_documents(paths: list[Path], page_id: str | None) -> tuple[list[PublishDocument], list[tuple[Path, str]]]:
    "Reads documents, collecting the files that cannot be read."

    documents: list[PublishDocument] = []
    failures: list[tuple[Path, str]] = []
    for path in paths:
        try:
            documents.append(read_document(path, page_id))
        except (DocumentError, OSError) as ex:
            LOGGER.error("Failed to read %s: %s", path, ex)
            failures.append((path, str(ex)))
    return documents, failures


def main(argv: Sequence[str] | None = None) -> None:
    parser = get_parser()
    args = Arguments()
    parser.parse_args(argv, namespace=args)

    logging.basicConfig(
        level=getattr(logging, args.loglevel.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(funcName)s [%(lineno)d] - %(message)s",
    )

    documents, failures = _read_documents(args.paths, args.page_id)

    if args.local:
        from .local import LocalConverter

        converter = LocalConverter()
        for document in documents:
            converter.convert(document)
        if failures:
            sys.exit(1)
        return

    from .api import ConfluenceAPI
    from .publisher import Publisher

    try:
        properties = ConnectionProperties(
            domain=args.domain,
            url_suffix=args.url_suffix,
            deployment=args.deployment,
            user_name=args.username,
            api_key=args.api_key,
            space_key=args.space,
            headers=args.headers,
            timeout=args.timeout,
        )
    except ArgumentError as e:
        parser.error(str(e))

    with ConfluenceAPI(properties) as client:
        results = Publisher(client).publish(documents)

    for published in results.published:
        print(f"{published.file_name}: {published.url}")
    for failed in results.failed:
        print(f"{failed.file_name}: FAILED: {failed.reason}", file=sys.stderr)

    if failures or not results.succeeded:
        sys.exit(1)


if __name__ == "__main__":
    main()

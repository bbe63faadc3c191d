"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import sys
import unittest
from collections.abc import Container, Iterable
from typing import TypeVar
from unittest.util import safe_repr

import orjson
import requests

from adf2conf.serializer import JsonType
from adf2conf.transport import ApiRequest

T = TypeVar("T")


class TypedTestCase(unittest.TestCase):
    def assertEqual(self, first: T, second: T, msg: str | None = None) -> None:
        super().assertEqual(first, second, msg)

    def assertNotEqual(self, first: T, second: T, msg: str | None = None) -> None:
        super().assertNotEqual(first, second, msg)

    def assertIn(self, member: T, container: Iterable[T] | Container[T], msg: str | None = None) -> None:
        super().assertIn(member, container, msg)

    def assertNotIn(self, member: T, container: Iterable[T] | Container[T], msg: str | None = None) -> None:
        super().assertNotIn(member, container, msg)

    def assertListEqual(self, list1: list[T], list2: list[T], msg: str | None = None) -> None:
        super().assertListEqual(list1, list2, msg=msg)

    if sys.version_info < (3, 14):

        def assertStartsWith(self, text: str, prefix: str, msg: str | None = None) -> None:
            """Just like self.assertTrue(text.startswith(prefix)), but with a nicer default message."""

            if not text.startswith(prefix):
                standardMsg = "%s does not start with %s" % (
                    safe_repr(text),
                    safe_repr(prefix),
                )
                self.fail(self._formatMessage(msg, standardMsg))


def make_response(status: int, body: JsonType | str | None = None) -> requests.Response:
    "Creates an HTTP response with the given status code and body, as if received from a server."

    response = requests.Response()
    response.status_code = status
    if body is None:
        response._content = b""
    elif isinstance(body, str):
        response._content = body.encode("utf-8")
    else:
        response._content = orjson.dumps(body)
    response.encoding = "utf-8"
    return response


class RecordingSender:
    "Records requests, and replies with pre-arranged responses in order."

    sent: list[ApiRequest]
    responses: list[requests.Response]

    def __init__(self, *responses: requests.Response) -> None:
        self.sent = []
        self.responses = list(responses)

    def __call__(self, request: ApiRequest) -> requests.Response:
        self.sent.append(request)
        if not self.responses:
            raise AssertionError(f"unexpected request: {request.method} {request.path}")
        return self.responses.pop(0)

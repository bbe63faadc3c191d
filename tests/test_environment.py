"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import os
import unittest
from unittest.mock import patch

from adf2conf.environment import ArgumentError, ConfluenceDeployment, ConnectionProperties, infer_deployment
from adf2conf.metadata import ConfluenceSiteMetadata
from tests.utility import TypedTestCase


class TestConnectionProperties(TypedTestCase):
    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self) -> None:
        properties = ConnectionProperties(domain="example.atlassian.net", api_key="secret")
        self.assertEqual(properties.deployment, ConfluenceDeployment.CLOUD)
        self.assertEqual(properties.url_suffix, "/wiki/rest")
        self.assertEqual(properties.base_url, "https://example.atlassian.net/wiki/rest")
        self.assertIsNone(properties.user_name)
        self.assertIsNone(properties.timeout)

    @patch.dict(os.environ, {}, clear=True)
    def test_deployment_inferred_from_suffix(self) -> None:
        properties = ConnectionProperties(domain="wiki.example.com", url_suffix="/confluence/rest", api_key="secret")
        self.assertEqual(properties.deployment, ConfluenceDeployment.DATA_CENTER)
        self.assertEqual(properties.base_url, "https://wiki.example.com/confluence/rest")

    @patch.dict(os.environ, {}, clear=True)
    def test_explicit_deployment(self) -> None:
        properties = ConnectionProperties(domain="wiki.example.com", deployment="datacenter", api_key="secret")
        self.assertEqual(properties.deployment, ConfluenceDeployment.DATA_CENTER)
        self.assertEqual(properties.url_suffix, "/rest")

        properties = ConnectionProperties(domain="wiki.example.com", url_suffix="/rest", deployment=ConfluenceDeployment.CLOUD, api_key="secret")
        self.assertEqual(properties.deployment, ConfluenceDeployment.CLOUD)

    @patch.dict(
        os.environ,
        {
            "CONFLUENCE_DOMAIN": "env.example.com",
            "CONFLUENCE_DEPLOYMENT": "server",
            "CONFLUENCE_USER_NAME": "jdoe",
            "CONFLUENCE_API_KEY": "env-secret",
            "CONFLUENCE_SPACE_KEY": "DEV",
            "CONFLUENCE_TIMEOUT": "30",
        },
        clear=True,
    )
    def test_environment(self) -> None:
        properties = ConnectionProperties()
        self.assertEqual(properties.domain, "env.example.com")
        self.assertEqual(properties.deployment, ConfluenceDeployment.DATA_CENTER)
        self.assertEqual(properties.user_name, "jdoe")
        self.assertEqual(properties.api_key, "env-secret")
        self.assertEqual(properties.space_key, "DEV")
        self.assertEqual(properties.timeout, 30.0)

    @patch.dict(os.environ, {}, clear=True)
    def test_validation(self) -> None:
        with self.assertRaises(ArgumentError):
            ConnectionProperties(domain="example.com")
        with self.assertRaises(ArgumentError):
            ConnectionProperties(api_key="secret")
        with self.assertRaises(ArgumentError):
            ConnectionProperties(domain="https://example.com", api_key="secret")
        with self.assertRaises(ArgumentError):
            ConnectionProperties(domain="example.com", url_suffix="/rest/", api_key="secret")
        with self.assertRaises(ArgumentError):
            ConnectionProperties(domain="example.com", deployment="mainframe", api_key="secret")

    @patch.dict(os.environ, {"CONFLUENCE_TIMEOUT": "soon"}, clear=True)
    def test_invalid_timeout(self) -> None:
        with self.assertRaises(ArgumentError):
            ConnectionProperties(domain="example.com", api_key="secret")

    def test_infer_deployment(self) -> None:
        self.assertEqual(infer_deployment("/wiki/rest"), ConfluenceDeployment.CLOUD)
        self.assertEqual(infer_deployment("/rest"), ConfluenceDeployment.DATA_CENTER)


class TestSiteMetadata(TypedTestCase):
    def test_page_url(self) -> None:
        cloud = ConfluenceSiteMetadata("example.atlassian.net", ConfluenceDeployment.CLOUD, "DEV")
        self.assertEqual(cloud.page_url("123"), "https://example.atlassian.net/wiki/spaces/DEV/pages/123")

        data_center = ConfluenceSiteMetadata("wiki.example.com", ConfluenceDeployment.DATA_CENTER)
        self.assertEqual(data_center.page_url("123", "OPS"), "https://wiki.example.com/spaces/OPS/pages/123")
        self.assertEqual(data_center.page_url("123"), "https://wiki.example.com/pages/viewpage.action?pageId=123")


if __name__ == "__main__":
    unittest.main()

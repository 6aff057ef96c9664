"""
Tests for the Tornado tool provider endpoint
"""

import json

from tornado.testing import AsyncHTTPTestCase

from tool_consumer import LTIToolConsumer
from tool_provider import TOOL_HTML, make_app

CONSUMER_SECRET = "provider-test-secret"


class ToolProviderHandlerTest(AsyncHTTPTestCase):
    def get_app(self):
        return make_app(CONSUMER_SECRET)

    def signed_body(self, secret=CONSUMER_SECRET, **extra_params):
        consumer = LTIToolConsumer("test_consumer", secret, self.get_url("/launch"))
        return consumer.signed_launch_body(extra_lti_params=extra_params or None)

    def test_get_is_refused(self):
        response = self.fetch("/launch")
        self.assertEqual(response.code, 200)
        self.assertIn(b"should be a POST request", response.body)

    def test_valid_launch_gets_tool(self):
        response = self.fetch(
            "/launch",
            method="POST",
            body=self.signed_body(resource_link_title="Course Tool", custom_note=""),
        )
        self.assertEqual(response.code, 200)
        self.assertEqual(response.body.decode("utf8"), TOOL_HTML)

    def test_wrong_secret_is_unauthorized(self):
        response = self.fetch(
            "/launch", method="POST", body=self.signed_body(secret="not-the-secret")
        )
        self.assertEqual(response.code, 401)
        self.assertEqual(json.loads(response.body), {"reason": "invalid_signature"})

    def test_tampered_launch_is_unauthorized(self):
        body = self.signed_body().replace("resource_link_id=1", "resource_link_id=2")
        response = self.fetch("/launch", method="POST", body=body)
        self.assertEqual(response.code, 401)

    def test_unsigned_launch_is_unauthorized(self):
        response = self.fetch(
            "/launch", method="POST", body="lti_message_type=basic-lti-launch-request"
        )
        self.assertEqual(response.code, 401)

    def test_undecodable_body_is_unauthorized(self):
        response = self.fetch("/launch", method="POST", body=b"\xff\xfe=\xff")
        self.assertEqual(response.code, 401)


class CustomLaunchPathTest(AsyncHTTPTestCase):
    def get_app(self):
        return make_app(CONSUMER_SECRET, launch_path="/lti/launch")

    def test_launch_on_custom_path(self):
        consumer = LTIToolConsumer("test_consumer", CONSUMER_SECRET, self.get_url("/lti/launch"))
        response = self.fetch(
            "/lti/launch", method="POST", body=consumer.signed_launch_body()
        )
        self.assertEqual(response.code, 200)

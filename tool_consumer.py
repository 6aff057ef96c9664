from typing import Dict, Tuple

import requests
from requests import PreparedRequest, Request
from requests.structures import CaseInsensitiveDict
from requests_oauthlib import OAuth1
from requests_oauthlib.oauth1_auth import SIGNATURE_TYPE_BODY
import tornado.options
from tornado.log import app_log
from tornado.options import define, options


class LTIToolConsumer:
    """
    Wrapper class to consume an LTI 1.0 Tool from any LTI 1.0 -compliant provider.

    Initialize this class as follows and consume the resource::

        tool_consumer = LTIToolConsumer("any_consumer_key", "<secret>", "<launch_url>")
        status, headers, tool_html = tool_consumer.launch_request()

    The consumer key only lets the provider distinguish its consumers, but it
    cannot be left out because that would break the format of an LTI Launch Request.
    """

    def __init__(
        self, consumer_key: str, consumer_secret: str, launch_url: str
    ) -> None:
        """
        Initialize the Consumer, setting the minimal required parameters for the request.

        :param consumer_key: an arbitrary key that the Tool Provider may use to distinguish
        its consumers
        :param consumer_secret: the secret that provider and consumer agreed upon to
        authenticate this request
        :param launch_url: the launch URL of the LTI tool that should be consumed
        """

        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.launch_url = launch_url
        self.lti_message_type = "basic-lti-launch-request"
        self.lti_version = "LTI-1p0"

    def launch_request(
        self, extra_lti_params: Dict = None, **kwargs
    ) -> Tuple[int, dict, str]:
        """
        Consume the LTI Tool by sending a signed launch request to the provider.

        :param extra_lti_params: dict containing extra key/value pairs to append to the request
        :param **kwargs: extra arguments to pass to requests, see `requests.post()` for details.

        :returns: a tuple containing HTTP status code, HTTP Response Headers and the
        Response Content (LTI tool itself)
        """

        request = self.sign_request(
            self.generate_launch_request_payload(extra_params=extra_lti_params)
        )

        # the signed request's own headers win over the caller's
        headers = CaseInsensitiveDict(kwargs.pop("headers", None) or {})
        headers.update(request.headers)

        # send the signed body as is, re-encoding it from a dict
        # would drop blank values and break the signature
        response = requests.post(
            self.launch_url, data=request.body, headers=headers, **kwargs
        )
        app_log.info("Launch request answered with %d", response.status_code)

        return (
            response.status_code,
            response.headers,
            response.content.decode("utf8").replace("\\n", ""),
        )

    def generate_launch_request_payload(
        self, extra_params: Dict = None
    ) -> PreparedRequest:
        """
        Generate and prepare the request content that will be later sent to the
        tool provider to request the LTI Resource.

        Extra parameters extend the payload and may override the defaults
        such as `lti_message_type` or `lti_version`.

        :param extra_params: dict containing extra key/value-pairs to extend the request

        :returns: PreparedRequest
        """

        payload = {
            "lti_message_type": self.lti_message_type,
            "lti_version": self.lti_version,
            "resource_link_id": 1,
        }

        if extra_params:
            payload |= extra_params

        return Request("POST", self.launch_url, data=payload).prepare()

    def sign_request(self, request: PreparedRequest) -> PreparedRequest:
        """
        Sign the given request with a OAuth1.0 HMAC-SHA1 signature in its body

        :param request: the request to be signed

        :returns: the signed request
        """

        sign = OAuth1(
            self.consumer_key, self.consumer_secret, signature_type=SIGNATURE_TYPE_BODY
        )
        return sign(request)

    def signed_launch_body(self, extra_lti_params: Dict = None) -> str:
        """
        the form-encoded body of a signed launch request, e.g. to post it from a browser form
        """

        body = self.sign_request(
            self.generate_launch_request_payload(extra_params=extra_lti_params)
        ).body
        if isinstance(body, bytes):
            body = body.decode("utf8")
        return body


def main():
    define("launch_url", default="http://localhost:13000/launch", help="launch URL of the LTI tool")
    define("consumer_key", default="test", help="consumer key sent along with the launch")
    define("consumer_secret", default="", help="secret shared with the tool provider")
    tornado.options.parse_command_line()

    status, headers, content = LTIToolConsumer(
        options.consumer_key, options.consumer_secret, options.launch_url
    ).launch_request(allow_redirects=True)

    print(status)
    print(content)


if __name__ == "__main__":
    main()

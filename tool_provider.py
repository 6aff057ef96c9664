import random
import string

import tornado.ioloop
import tornado.options
import tornado.web
from tornado.log import app_log
from tornado.options import define, options

from lti_signature import verify_lti_launch

TOOL_HTML = "<div><h1>take this awesome tool</h1></div>"


class ToolProviderHandler(tornado.web.RequestHandler):
    """
    LTI 1.0 Tool Provider endpoint that sends out a tool (here an html string)
    to any LTI-compliant consumer that signed its launch with the shared secret.

    Example - Integrate this tool in a Moodle Course:

    Start this Tornado Server from the command line::

        python3 tool_provider.py --consumer_secret=<secret>

    Head over to your moodle course, add a new activity, and choose "External Tool".
    - Hit "show more..", put the Consumer Key into "Consumer key"
      and the Consumer Secret into "Shared secret"
    - set the "Tool URL" to: http://localhost:13000/launch
    - hit "Save and Display"

    If everything went right, the activity renders "take this awesome tool" in bold text.
    """

    def initialize(self, consumer_secret: str) -> None:
        self.consumer_secret = consumer_secret

    def get(self):
        self.write("Launch requests should be a POST request!")

    def post(self):
        """
        Processes an incoming launch request. The OAuth1.0 signature is checked
        against the raw body and the URL the request came in on. If it does not
        verify, a HTTP Status of 401 Unauthorized is sent back.
        """

        # the body is passed on as received, parsing and re-encoding it
        # could change what was signed
        try:
            body = self.request.body.decode("utf8")
        except UnicodeDecodeError:
            body = None

        valid = body is not None and verify_lti_launch(
            self.request.method,
            self.request.full_url(),
            body,
            self.consumer_secret,
        )

        if valid:
            app_log.info("Signature validated, sending tool to embed")
            self.write(TOOL_HTML)
        else:
            app_log.warning("Signature didn't validate, sending 401 Unauthorized")
            self.set_status(401)
            self.write({"reason": "invalid_signature"})


def make_app(consumer_secret: str, launch_path: str = "/launch") -> tornado.web.Application:
    """
    build the tornado application by mapping the launch route to its handler
    """

    return tornado.web.Application(
        [(launch_path, ToolProviderHandler, dict(consumer_secret=consumer_secret))]
    )


def main():
    define("port", default=13000, help="port the tool provider listens on", type=int)
    define("consumer_key", default="test_consumer", help="consumer key to hand out to the LMS")
    define(
        "consumer_secret",
        default=None,
        help="shared secret of the consumers, randomly generated if not given",
    )
    tornado.options.parse_command_line()

    # every consumer uses the same secret here, so the consumer key only has to
    # be present in the request as the LTI standard demands
    consumer_secret = options.consumer_secret or "".join(
        random.choices(string.ascii_letters, k=10)
    )

    app_log.info("Starting on port %d", options.port)
    print("Consumer Key: {}".format(options.consumer_key))
    print("Consumer Secret: {}".format(consumer_secret))

    app = make_app(consumer_secret)
    app.listen(options.port)
    tornado.ioloop.IOLoop.current().start()


if __name__ == "__main__":
    main()

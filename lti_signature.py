"""
OAuth 1.0 HMAC-SHA1 signature verification for LTI 1.0 launch requests.

Verifying a launch means redoing what the Tool Consumer did when it signed
the request and checking that both signatures match. If they do, nobody
altered the request after it was signed and the sender knows the consumer
secret, so the launch parameters can be trusted.

Example::

    valid_launch = verify_lti_launch(
        # HTTP method, LTI launches are POSTed
        "POST",
        # full URI the launch was received on
        "https://my_domain/lti_launch",
        # raw x-www-form-urlencoded request body
        "oauth_consumer_key=asdf&...&oauth_signature=...",
        # secret shared between Tool Consumer and Tool Provider
        "my_consumer_secret",
    )

Details on the signing process: https://oauth.net/core/1.0/#signing_process
"""

import base64
import hashlib
import hmac
import logging
import re
import urllib.parse
from typing import List, Optional, Tuple, Union

from oauthlib.oauth1.rfc5849 import signature as oauth_signature
from oauthlib.oauth1.rfc5849.utils import escape

log = logging.getLogger(__name__)

SIGNATURE_PARAM = "oauth_signature"

# a "%" not followed by two hex digits
_INVALID_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

Params = List[Tuple[str, str]]


class MalformedParametersError(ValueError):
    """Raised when a form-encoded parameter string cannot be decoded exactly."""


def parse_params(params: str) -> Params:
    """
    decode an x-www-form-urlencoded string into a list of (key, value) pairs,
    keeping arrival order, duplicates and blank values

    :param params: the raw body or query string, e.g. ``a=1&b=hello+world``

    :raises MalformedParametersError: on invalid percent escapes or bytes
    that are not valid UTF-8
    """

    if _INVALID_ESCAPE.search(params):
        raise MalformedParametersError("invalid percent escape in parameters")

    try:
        return urllib.parse.parse_qsl(
            params, keep_blank_values=True, encoding="utf-8", errors="strict"
        )
    except UnicodeDecodeError as e:
        raise MalformedParametersError("parameters are not valid UTF-8") from e


def normalize_params(params: Union[str, Params]) -> str:
    """
    Build the normalized request parameter string (OAuth Core 1.0, 9.1.1).

    ``oauth_signature`` is left out since it cannot sign itself. Keys and
    values are percent-encoded, then sorted by key and, for equal keys, by
    value, so the result does not depend on the order the parameters arrived in.

    :param params: raw form-encoded string or already parsed pairs
    """

    if isinstance(params, str):
        params = parse_params(params)

    return oauth_signature.normalize_parameters(
        [(key, value) for key, value in params if key != SIGNATURE_PARAM]
    )


def base_string_uri(uri: str) -> str:
    """
    Reduce a request URI to scheme, authority and path (OAuth Core 1.0, 9.1.2).

    Scheme and host are lowercased, default ports, userinfo, query and
    fragment are dropped. The path is kept as is.

    :raises ValueError: if the URI has no scheme or host, or an invalid port
    """

    return oauth_signature.base_string_uri(uri)


def signature_base_string(method: str, uri: str, normalized_params: str) -> str:
    """
    Concatenate method, base URI and normalized parameters, each encoded,
    into the signature base string (OAuth Core 1.0, 9.1.3).
    """

    return oauth_signature.signature_base_string(
        method, base_string_uri(uri), normalized_params
    )


def sign_hmac_sha1(
    base_string: str, consumer_secret: str, token_secret: str = ""
) -> str:
    """
    Sign a base string with HMAC-SHA1 and return the base64 digest (OAuth Core 1.0, 9.2).

    The key is the encoded consumer secret and the encoded token secret joined
    by ``&``. LTI launches carry no token, so it usually ends with a bare ``&``.
    """

    key = "{}&{}".format(escape(consumer_secret), escape(token_secret or ""))
    digest = hmac.new(
        key.encode("utf-8"), base_string.encode("utf-8"), hashlib.sha1
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def signature(
    method: str,
    uri: str,
    params: Union[str, Params],
    consumer_secret: str,
    token_secret: Optional[str] = None,
) -> str:
    """
    Generate the signature for an LTI launch.

    :param method: HTTP method of the request, generally POST
    :param uri: destination URI of the launch, usually the tool provider's launch route
    :param params: the form-encoded launch parameters (body for POST, query for GET),
        any ``oauth_signature`` in them is ignored
    :param consumer_secret: shared secret of the Tool Consumer
    :param token_secret: generally not used for LTI launches

    :returns: the base64 encoded HMAC-SHA1 signature
    """

    base_string = signature_base_string(method, uri, normalize_params(params))
    return sign_hmac_sha1(base_string, consumer_secret, token_secret or "")


def request_signature(params: Union[str, Params]) -> Optional[str]:
    """
    get the decoded ``oauth_signature`` the caller sent along, or None if there is none

    :raises MalformedParametersError: if the signature was sent more than once
    """

    if isinstance(params, str):
        params = parse_params(params)

    signatures = [value for key, value in params if key == SIGNATURE_PARAM]
    if len(signatures) > 1:
        raise MalformedParametersError("oauth_signature given more than once")
    return signatures[0] if signatures else None


def verify_lti_launch(
    method: str,
    uri: str,
    params: str,
    consumer_secret: str,
    provided_signature: Optional[str] = None,
) -> bool:
    """
    Verify a given LTI launch.

    The Tool Consumer's signature is recomputed from the request and
    compared against the one that came with it. Bad input of any kind,
    e.g. a missing signature, broken percent escapes or a relative URI,
    makes the launch fail verification instead of raising.

    :param method: HTTP method of the request, generally POST
    :param uri: the full URI the launch was received on, including the scheme.
        http vs. https or a trailing slash make a difference.
    :param params: the raw form-encoded launch parameters, exactly as received
    :param consumer_secret: shared secret of the Tool Consumer
    :param provided_signature: the signature to check. Taken from the
        ``oauth_signature`` parameter of `params` if not given.

    :returns: True if the launch is authentic
    """

    try:
        parsed = parse_params(params)
        if provided_signature is None:
            provided_signature = request_signature(parsed)
        elif "%" in provided_signature:
            # base64 has no "%", so this one is still percent-encoded
            provided_signature = urllib.parse.unquote(provided_signature, errors="strict")
        if not provided_signature:
            log.debug("LTI launch carries no oauth_signature")
            return False

        expected = signature(method, uri, parsed, consumer_secret)
        # constant time, and bytes so non-ASCII input cannot raise
        return hmac.compare_digest(
            expected.encode("utf-8"), provided_signature.encode("utf-8")
        )
    except (ValueError, TypeError, AttributeError) as e:
        log.debug("LTI launch could not be verified: %s", type(e).__name__)
        return False

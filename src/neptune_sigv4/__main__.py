# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Send a SPARQL query or update to a Neptune endpoint.

Credentials are read from ``AWS_ACCESS_KEY_ID``, ``AWS_SECRET_ACCESS_KEY`` and
``AWS_SESSION_TOKEN``. Example::

    python -m neptune_sigv4 https://my-cluster:8182 "SELECT * { ?s ?p ?o } LIMIT 10"
"""

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Mapping, Sequence

import aiohttp

from .aio.aiohttp import AIOHTTPClient
from .config import NEPTUNE_ANALYTICS_SERVICE_NAME, NEPTUNE_SERVICE_NAME, SigningConfig
from .exceptions import NeptuneSigV4Error
from .identity import StaticCredentialsResolver
from .interfaces.http import HTTPClient, HTTPResponse
from .sparql import AsyncSparqlClient

DEFAULT_QUERY = "SELECT * { ?s ?p ?o } LIMIT 100"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="neptune_sigv4",
        description="Send a SigV4 signed SPARQL request to a Neptune endpoint",
    )
    parser.add_argument(
        "endpoint", help="Endpoint URL, e.g. https://<your_neptune_endpoint>:8182"
    )
    parser.add_argument(
        "query", nargs="?", default=DEFAULT_QUERY, help="SPARQL query or update"
    )
    parser.add_argument(
        "--update", action="store_true", help="Send the text as a SPARQL update"
    )
    parser.add_argument("--region", help="Signing region")
    parser.add_argument(
        "--service",
        help=f"Signing service name, e.g. {NEPTUNE_SERVICE_NAME} or "
        f"{NEPTUNE_ANALYTICS_SERVICE_NAME}",
    )
    parser.add_argument(
        "--unsigned",
        action="store_true",
        help="Send the request without signing it",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    return parser


def resolver_from_environment(
    environ: Mapping[str, str],
) -> StaticCredentialsResolver:
    try:
        access_key_id = environ["AWS_ACCESS_KEY_ID"]
        secret_access_key = environ["AWS_SECRET_ACCESS_KEY"]
    except KeyError as e:
        raise SystemExit(
            f"{e.args[0]} must be set to sign requests. Use --unsigned for endpoints "
            "without IAM authentication."
        ) from e
    return StaticCredentialsResolver.from_keys(
        access_key_id,
        secret_access_key,
        environ.get("AWS_SESSION_TOKEN") or None,
    )


async def run(
    args: argparse.Namespace,
    *,
    transport: HTTPClient,
    environ: Mapping[str, str],
) -> HTTPResponse:
    resolver = None
    config = None
    if not args.unsigned:
        resolver = resolver_from_environment(environ)
        config = SigningConfig(
            service=args.service, region=args.region, environ=environ
        )

    async with AsyncSparqlClient(
        args.endpoint,
        transport=transport,
        identity_resolver=resolver,
        config=config,
    ) as client:
        if args.update:
            return await client.update(args.query)
        return await client.query(args.query)


def main(
    argv: Sequence[str] | None = None,
    *,
    transport: HTTPClient | None = None,
    environ: Mapping[str, str] | None = None,
) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    try:
        response = asyncio.run(
            run(
                args,
                transport=transport or AIOHTTPClient(),
                environ=os.environ if environ is None else environ,
            )
        )
    except (NeptuneSigV4Error, aiohttp.ClientError, asyncio.TimeoutError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"> Response status: {response.status}")
    body = response.body
    if isinstance(body, bytes | bytearray):
        print(body.decode("utf-8", errors="replace"))
    return 0 if 200 <= response.status < 300 else 1


if __name__ == "__main__":
    sys.exit(main())

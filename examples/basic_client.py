"""
Basic minihttp client example.

This example demonstrates building requests through a Client,
sending JSON payloads, handling redirects and routing failures to
response and exception handlers.
"""

import logging

from minihttp import Client, HTTPClientError, JsonCodec

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

json_codec = JsonCodec()

client = (
    Client.builder()
    .with_base_url("http://httpbin.org")
    .with_header("User-Agent", "minihttp-example/0.1.0")
    .with_header("Accept", "application/json")
    .with_codec(json_codec)
    .with_timeouts(connect=5.0, read=10.0)
    .build()
)


def simple_get_request():
    """Demonstrate a simple GET request with query parameters."""
    logger.info("Making simple GET request...")
    response = client.get("/get").query_param("page", 1).query_param("tag", "a b").execute()
    logger.info(f"Response status: {response.status_code} {response.reason}")
    document = response.body_as(json_codec)
    logger.info(f"Server saw args: {document['args']}")


def post_request_with_body():
    """Demonstrate a POST request with a JSON body."""
    logger.info("Making POST request with body...")
    response = client.post("/post", {"message": "Hello, World!"}).execute()
    document = response.raise_for_status().body_as(json_codec)
    if document.get("json") == {"message": "Hello, World!"}:
        logger.info("Our data was received by the server")


def redirect_demo():
    """Follow a redirect chain, then observe the budget being enforced."""
    response = client.get("/redirect/2").execute()
    logger.info(f"Landed on {response.url} after {len(response.history)} redirects")

    client.get("/redirect/4").max_redirects(2).on_exception(
        lambda e: logger.info(f"Redirect budget enforced: {e}")
    ).execute()


def handler_demo():
    """Dispatch on status codes instead of inspecting the response."""
    client.get("/status/404").on_status(
        404, lambda r: logger.info("Not found, as expected")
    ).on_remaining(
        lambda r: logger.warning(f"Unexpected status {r.status_code}")
    ).execute()


def main():
    """Run all examples."""
    logger.info("Starting minihttp examples...")
    for example in (simple_get_request, post_request_with_body, redirect_demo, handler_demo):
        try:
            example()
        except HTTPClientError as e:
            logger.error(f"{example.__name__} failed: {e}")
    logger.info("All examples completed!")


if __name__ == "__main__":
    main()

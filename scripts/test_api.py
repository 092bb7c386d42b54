#!/usr/bin/env python3
"""API smoke test for a deployed Sitepulse stage.

Exercises the visit log and payment-click endpoints end to end.

Usage:
    export API_URL="https://your-api-url.execute-api.us-east-1.amazonaws.com/dev"

    # Run all checks
    python scripts/test_api.py

    # Run one group
    python scripts/test_api.py --test visits
"""

import argparse
import os
import sys
from datetime import datetime
from typing import Any

import httpx

API_URL = os.environ.get("API_URL", "")


class Colors:
    """ANSI color codes for terminal output."""

    GREEN = "\033[92m"
    RED = "\033[91m"
    BLUE = "\033[94m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


def print_success(msg: str) -> None:
    """Print success message in green."""
    print(f"{Colors.GREEN}[OK]{Colors.RESET} {msg}")


def print_error(msg: str) -> None:
    """Print error message in red."""
    print(f"{Colors.RED}[ERROR]{Colors.RESET} {msg}")


def print_info(msg: str) -> None:
    """Print info message in blue."""
    print(f"{Colors.BLUE}[INFO]{Colors.RESET} {msg}")


def print_header(msg: str) -> None:
    """Print section header."""
    print(f"\n{Colors.BOLD}{'=' * 60}{Colors.RESET}")
    print(f"{Colors.BOLD}{msg}{Colors.RESET}")
    print(f"{Colors.BOLD}{'=' * 60}{Colors.RESET}\n")


class APITester:
    """Smoke tester for the Sitepulse API."""

    def __init__(self, api_url: str):
        self.api_url = api_url.rstrip("/")
        self.client = httpx.Client(timeout=30.0)

    def _request(
        self,
        method: str,
        path: str,
        data: dict | None = None,
        params: dict | None = None,
        headers: dict | None = None,
        expect_status: int = 200,
    ) -> dict[str, Any] | None:
        """Make an API request.

        Returns:
            Response data, an empty dict for 204, or None on error.
        """
        url = f"{self.api_url}{path}"
        try:
            response = self.client.request(
                method=method,
                url=url,
                json=data,
                params=params,
                headers={"Content-Type": "application/json", **(headers or {})},
            )
        except httpx.RequestError as e:
            print_error(f"Request failed: {e}")
            return None

        if response.status_code != expect_status:
            print_error(f"{method} {path} returned {response.status_code}")
            print(f"  Response: {response.text[:500]}")
            return None
        if response.status_code == 204:
            return {}
        return response.json()

    def test_visits(self) -> bool:
        """Log a visit and find it in the recent listing."""
        print_header("Testing visit log")

        marker = f"/smoke-{datetime.now().strftime('%H%M%S')}"
        created = self._request(
            "POST", "/log-ip", data={"page": marker, "note": "smoke test"}, expect_status=201
        )
        if not created:
            return False
        print_success(f"Logged visit {created['id']}")

        minimal = self._request(
            "POST",
            "/log-ip",
            data={"page": marker},
            headers={"Prefer": "return=minimal"},
            expect_status=204,
        )
        if minimal is None:
            return False
        print_success("Minimal response honoured")

        listing = self._request("GET", "/log-ip/recent", params={"limit": 10})
        if not listing:
            return False
        if not any(row.get("page") == marker for row in listing["rows"]):
            print_error("Logged visit missing from listing")
            return False
        print_success(f"Listing returned {listing['count']} rows")

        bad_cursor = self._request(
            "GET", "/log-ip/recent", params={"after": "not-a-time"}, expect_status=400
        )
        return bad_cursor is not None

    def test_clicks(self) -> bool:
        """Count payment clicks and read them back."""
        print_header("Testing payment clicks")

        order_id = f"smoke-{datetime.now().strftime('%H%M%S')}"
        body = {"orderId": order_id, "sessionId": "smoke", "amount": "1.00", "currency": "USD"}

        first = self._request("POST", "/metrics/payment-click", data=body, expect_status=201)
        second = self._request("POST", "/metrics/payment-click", data=body, expect_status=201)
        if not first or not second:
            return False
        if second["clicks"] != first["clicks"] + 1:
            print_error(f"Expected {first['clicks'] + 1} clicks, got {second['clicks']}")
            return False
        print_success(f"Counter at {second['clicks']}")

        summary = self._request("GET", "/metrics/payment-clicks", params={"orderId": order_id})
        if not summary or summary["total"] != second["clicks"]:
            print_error("Order summary does not match")
            return False
        print_success(f"Order {order_id} total {summary['total']}")

        stats = self._request("GET", "/metrics/payment-click/stats", params={"days": 7})
        if not stats:
            return False
        print_info(f"Stats: total={stats['total']} last24h={stats['last24h']}")

        missing = self._request(
            "POST", "/metrics/payment-click", data={"sessionId": "smoke"}, expect_status=400
        )
        return missing is not None


def main() -> int:
    parser = argparse.ArgumentParser(description="Smoke test the Sitepulse API")
    parser.add_argument("--url", default=API_URL, help="API base URL (default: $API_URL)")
    parser.add_argument("--test", choices=["visits", "clicks"], help="Run a single group")
    args = parser.parse_args()

    if not args.url:
        print_error("API_URL is not set; pass --url or export API_URL")
        return 2

    tester = APITester(args.url)
    groups = {"visits": tester.test_visits, "clicks": tester.test_clicks}
    selected = [args.test] if args.test else list(groups)

    results = {name: groups[name]() for name in selected}
    print_header("Summary")
    for name, passed in results.items():
        (print_success if passed else print_error)(name)

    return 0 if all(results.values()) else 1


if __name__ == "__main__":
    sys.exit(main())

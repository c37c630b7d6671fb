#!/usr/bin/env python3
"""
ensure-laptop

Purpose:
  Ensure a laptop unit with a given `serial` exists in the inventory API.
  - If found: print the record (JSON) and exit 0 with status "exists".
  - If not found: create it from the attributes given on the command line.

API:
  Base: http://localhost:3000
  List:   GET  /products        -> JSON list of units
  Create: POST /products        -> body: {"serial": "...", "brand": "...", ...}

Examples:
  ensure-laptop 5CD1234XYZ --brand HP --model "EliteBook 840" --processor i7 --ram 16GB
  ensure-laptop 5CD1234XYZ --brand HP --model "EliteBook 840" --processor i7 --ram 16GB \
      --storage 512GB --image-url https://img.example/elitebook.png
  INVENTORY_BASE_URL=http://inventory:3000 ensure-laptop 5CD1234XYZ ...

Exit codes:
  0 = success (exists or created)
  1 = handled application error
  2 = network/HTTP error
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any, Dict, Optional, Sequence

import requests

DEFAULT_BASE_URL = "http://localhost:3000"
RESOURCE_PATH = "products"


class ApplicationError(Exception):
    """The service answered, but refused the request."""


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Ensure a laptop serial exists in the inventory API; create if missing.")
    p.add_argument("serial", help="Laptop serial number.")
    p.add_argument("--brand", required=True)
    p.add_argument("--model", required=True)
    p.add_argument("--processor", required=True)
    p.add_argument("--ram", required=True)
    p.add_argument("--storage", default=None)
    p.add_argument("--purchase-date", default=None, help="ISO date, e.g. 2024-03-01.")
    p.add_argument("--status", choices=("Available", "Sold"), default=None)
    p.add_argument("--image-url", default=None,
                   help="Only used when this is the first unit of its model group.")
    p.add_argument("--base-url", default=os.getenv("INVENTORY_BASE_URL", DEFAULT_BASE_URL),
                   help=f"Base API URL (default: $INVENTORY_BASE_URL or {DEFAULT_BASE_URL})")
    p.add_argument("--timeout", type=float, default=15.0,
                   help="HTTP timeout in seconds (default: 15)")
    p.add_argument("-v", "--verbose", action="store_true",
                   help="Verbose logging to stderr.")
    return p.parse_args(argv)


def build_payload(args: argparse.Namespace) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "serial": args.serial,
        "brand": args.brand,
        "model": args.model,
        "processor": args.processor,
        "ram": args.ram,
    }
    optional = {
        "storage": args.storage,
        "purchaseDate": args.purchase_date,
        "status": args.status,
        "imageUrl": args.image_url,
    }
    payload.update({key: value for key, value in optional.items() if value is not None})
    return payload


def vprint(enabled: bool, *args: Any) -> None:
    if enabled:
        print(*args, file=sys.stderr)


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return json.dumps(body)


def find_laptop_by_serial(session: requests.Session, base_url: str, serial: str,
                          timeout: float, verbose: bool = False) -> Optional[Dict[str, Any]]:
    url = f"{base_url.rstrip('/')}/{RESOURCE_PATH}"
    vprint(verbose, f"GET {url}")
    r = session.get(url, headers={"Accept": "application/json"}, timeout=timeout)
    r.raise_for_status()
    data = r.json()
    if not isinstance(data, list):
        raise ApplicationError(f"Expected list from GET {url}, got: {type(data).__name__}")
    for item in data:
        if isinstance(item, dict) and item.get("serial") == serial:
            return item
    return None


def create_laptop(session: requests.Session, base_url: str, payload: Dict[str, Any],
                  timeout: float, verbose: bool = False) -> Dict[str, Any]:
    url = f"{base_url.rstrip('/')}/{RESOURCE_PATH}"
    vprint(verbose, f"POST {url} json={payload}")
    r = session.post(url, headers={"Accept": "application/json"}, json=payload, timeout=timeout)
    if 400 <= r.status_code < 500:
        raise ApplicationError(f"Create rejected ({r.status_code}): {_error_message(r)}")
    if r.status_code not in (200, 201):
        raise requests.HTTPError(f"Create failed ({r.status_code}): {_error_message(r)}", response=r)
    return r.json()


def main(argv: Optional[Sequence[str]] = None, session: Optional[requests.Session] = None) -> int:
    args = parse_args(argv)
    session = session or requests.Session()
    try:
        existing = find_laptop_by_serial(session, args.base_url, args.serial, args.timeout, args.verbose)
        if existing:
            print(json.dumps({"status": "exists", "serial": args.serial, "record": existing}, indent=2))
            return 0

        created = create_laptop(session, args.base_url, build_payload(args), args.timeout, args.verbose)
        print(json.dumps({"status": "created", "serial": args.serial, "record": created}, indent=2))
        return 0

    except requests.exceptions.RequestException as e:
        print(f"NETWORK_ERROR: {e}", file=sys.stderr)
        return 2
    except ApplicationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Command-line interface for the food-delivery checkout service.

Usage:
    uv run python cli.py [command] [options]

Commands:
    demo            Run demo scenarios
    quote           Show the fallback delivery fee for a subtotal
    import-preview  Validate a menu import file without importing it
    test            Run the test suite
    serve           Start the API server

Examples:
    uv run python cli.py demo cart
    uv run python cli.py quote third_party 150 --distance 8
    uv run python cli.py import-preview vendor-001 data/sample_menu.csv --filter errors
    uv run python cli.py serve
"""

import argparse
import subprocess
import sys
from pathlib import Path


def run_demo(scenario: str) -> None:
    """Run a demo scenario."""
    from checkout.demo import run_cart_demo, run_order_lifecycle_demo

    if scenario == "cart":
        run_cart_demo()
    elif scenario == "lifecycle":
        run_order_lifecycle_demo()
    elif scenario == "all":
        run_cart_demo()
        run_order_lifecycle_demo()
    else:
        print(f"Unknown scenario: {scenario}")
        sys.exit(1)


def run_quote(method: str, subtotal: float, distance: float) -> None:
    """Print the fallback fee breakdown for a delivery method."""
    from checkout.delivery_fees import DeliveryFeeCalculator
    from domain.models import DeliveryMethod
    from domain.settings import CheckoutSettings

    settings = CheckoutSettings(default_distance_km=distance)
    quote = DeliveryFeeCalculator(settings).quote(DeliveryMethod(method), subtotal)
    currency = settings.currency

    print(f"Method:       {quote.method.display_name}")
    print(f"Subtotal:     {currency}{subtotal:.2f}")
    print(f"Base fee:     {currency}{quote.base_fee:.2f}")
    print(f"Distance fee: {currency}{quote.distance_fee:.2f} ({quote.distance_km:.1f} km)")
    print(f"Final fee:    {currency}{quote.final_fee:.2f}")


def run_import_preview(vendor_id: str, path: str, row_filter: str) -> None:
    """Validate a menu file and print the preview."""
    from checkout.errors import CheckoutError
    from menu_import.service import MenuImportService

    file_path = Path(path)
    if not file_path.exists():
        print(f"File not found: {path}")
        sys.exit(1)

    try:
        result = MenuImportService().preview(vendor_id, file_path.name, file_path.read_bytes())
    except CheckoutError as e:
        print(f"Import failed: {e.message}")
        sys.exit(1)

    counts = result.counts()
    print(
        f"{counts['total_rows']} rows: {counts['valid_rows']} valid, "
        f"{counts['error_rows']} with errors, {counts['warning_rows']} with warnings\n"
    )
    for row in result.filter(row_filter):
        marker = "✗" if row.has_errors else ("!" if row.has_warnings else "✓")
        print(f"{marker} Row {row.row_number}: {row.name or '(no name)'}")
        for error in row.errors:
            print(f"    error:   {error}")
        for warning in row.warnings:
            print(f"    warning: {warning}")


def run_tests(args: list[str]) -> None:
    """Run the test suite."""
    cmd = ["uv", "run", "pytest"] + args
    subprocess.run(cmd)


def run_server(host: str, port: int, reload: bool) -> None:
    """Start the API server."""
    cmd = ["uv", "run", "uvicorn", "api.main:app", f"--host={host}", f"--port={port}"]
    if reload:
        cmd.append("--reload")

    print(f"Starting server at http://{host}:{port}")
    print(f"API docs available at http://{host}:{port}/docs")
    subprocess.run(cmd)


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Food Delivery Checkout CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s demo all
  %(prog)s quote own_fleet 120
  %(prog)s import-preview vendor-001 data/sample_menu.csv
  %(prog)s test -v
  %(prog)s serve --reload
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Demo command
    demo_parser = subparsers.add_parser("demo", help="Run demo scenarios")
    demo_parser.add_argument(
        "scenario",
        choices=["cart", "lifecycle", "all"],
        help="Which scenario to run",
    )

    # Quote command
    quote_parser = subparsers.add_parser("quote", help="Show the fallback delivery fee")
    quote_parser.add_argument(
        "method",
        choices=["customer_pickup", "sales_agent_pickup", "own_fleet", "third_party", "scheduled"],
        help="Delivery method",
    )
    quote_parser.add_argument("subtotal", type=float, help="Cart subtotal")
    quote_parser.add_argument("--distance", type=float, default=5.0, help="Distance in km")

    # Import preview command
    import_parser = subparsers.add_parser("import-preview", help="Validate a menu import file")
    import_parser.add_argument("vendor_id", help="Vendor the menu belongs to")
    import_parser.add_argument("path", help="CSV, JSON or .xlsx menu file")
    import_parser.add_argument(
        "--filter",
        dest="row_filter",
        choices=["all", "valid", "errors", "warnings"],
        default="all",
        help="Which rows to list",
    )

    # Test command
    test_parser = subparsers.add_parser("test", help="Run the test suite")
    test_parser.add_argument(
        "pytest_args",
        nargs="*",
        default=[],
        help="Arguments to pass to pytest",
    )

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    args = parser.parse_args()

    if args.command == "demo":
        run_demo(args.scenario)
    elif args.command == "quote":
        run_quote(args.method, args.subtotal, args.distance)
    elif args.command == "import-preview":
        run_import_preview(args.vendor_id, args.path, args.row_filter)
    elif args.command == "test":
        run_tests(args.pytest_args)
    elif args.command == "serve":
        run_server(args.host, args.port, args.reload)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()

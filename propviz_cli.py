#!/usr/bin/env python3
"""PropViz command line interface"""

import sys
import os
import argparse
import json
import mimetypes
import requests
from typing import Dict, List, Optional
from tabulate import tabulate

# Default API endpoint
DEFAULT_API_URL = os.getenv("PROPVIZ_API_URL", "http://localhost:3000/api")

class PropVizCli:
    """Command line client for the PropViz API"""

    def __init__(self, api_url: str = DEFAULT_API_URL, admin_key: Optional[str] = None):
        self.api_url = api_url.rstrip('/')
        self.session = requests.Session()
        if admin_key:
            self.session.headers["X-Admin-Key"] = admin_key

    def _error(self, error: requests.RequestException) -> int:
        message = str(error)
        response = getattr(error, "response", None)
        if response is not None:
            try:
                message = response.json().get("message", message)
            except ValueError:
                pass
        print(f"❌ Error: {message}")
        return 1

    def geocode(self, address: str) -> int:
        """Look up an address"""
        print(f"📍 Geocoding: {address}\n")

        try:
            response = self.session.get(f"{self.api_url}/geocode", params={"address": address})
            response.raise_for_status()
        except requests.RequestException as e:
            return self._error(e)

        results = response.json().get("results", [])
        if not results:
            print("Address not found. Please try a different address.")
            return 1

        rows = [
            [r.get("formatted_address"), r["geometry"]["location"]["lat"], r["geometry"]["location"]["lng"]]
            for r in results
        ]
        print(tabulate(rows, headers=["Address", "Lat", "Lng"], floatfmt=".6f"))
        return 0

    def measure(self, geojson_file: str, pitch: str) -> int:
        """Measure the shapes in a GeoJSON file"""
        payload = self._load_shapes(geojson_file, pitch)

        try:
            response = self.session.post(f"{self.api_url}/measurements", json=payload)
            response.raise_for_status()
        except requests.RequestException as e:
            return self._error(e)

        data = response.json()
        summary = data["summary"]

        print("📐 Totals:")
        print(tabulate([
            ["Land", summary["land"]["count"], f"{summary['land']['area_sqft']:,.2f} sq ft", f"{summary['land']['area_m2']:,.2f} m²"],
            ["Roof", summary["roof"]["count"], f"{summary['roof']['area_sqft']:,.2f} sq ft", f"{summary['roof']['area_m2']:,.2f} m²"],
            [f"Roof (pitch x{summary['roof']['pitch_multiplier']})", "",
             f"{summary['roof']['adjusted_area_sqft']:,.2f} sq ft", f"{summary['roof']['adjusted_area_m2']:,.2f} m²"],
            ["Fence", summary["fence"]["count"], f"{summary['fence']['length_ft']:,.2f} ft", f"{summary['fence']['length_m']:,.2f} m"],
        ], headers=["", "Shapes", "Imperial", "Metric"]))

        warnings = [s for s in data["shapes"] if not s.get("is_simple", True)]
        for shape in warnings:
            print(f"⚠️  {shape['kind']} shape {shape['id']} crosses itself; its measurement is unreliable")
        return 0

    def report(self, geojson_file: str, pitch: str, output: str,
               address: Optional[str] = None, include_history: bool = False) -> int:
        """Write a PDF report for the shapes in a GeoJSON file"""
        payload = self._load_shapes(geojson_file, pitch)
        payload["address"] = address
        payload["includeHistory"] = include_history

        try:
            response = self.session.post(f"{self.api_url}/measurements/report", json=payload)
            response.raise_for_status()
        except requests.RequestException as e:
            return self._error(e)

        with open(output, "wb") as f:
            f.write(response.content)
        print(f"💾 Report saved to: {output}")
        return 0

    def upload(self, image_path: str) -> int:
        """Upload a photo for visualization"""
        content_type = mimetypes.guess_type(image_path)[0] or "application/octet-stream"

        try:
            with open(image_path, "rb") as f:
                response = self.session.post(
                    f"{self.api_url}/upload-image",
                    files={"image": (os.path.basename(image_path), f, content_type)}
                )
            response.raise_for_status()
        except requests.RequestException as e:
            return self._error(e)

        print(f"✅ Uploaded: {response.json()['url']}")
        return 0

    def visualize(self, image_url: str, viz_type: str, options: Dict[str, str], save: bool = False) -> int:
        """Generate a visualization and optionally save it to history"""
        print(f"🎨 Generating {viz_type} visualization...\n")

        try:
            response = self.session.post(
                f"{self.api_url}/visualize",
                json={"imageUrl": image_url, "type": viz_type, "options": options}
            )
            response.raise_for_status()
            result = response.json()

            print(f"✅ {result['instruction']} (via {result['provider']})")
            if result.get("temporary"):
                print("   Storage was unavailable; the image is only available inline")
            else:
                print(f"   {result['generatedUrl']}")

            if save:
                response = self.session.post(
                    f"{self.api_url}/history",
                    json={
                        "type": viz_type,
                        "options": options,
                        "originalUrl": result["originalUrl"],
                        "generatedUrl": result["generatedUrl"]
                    }
                )
                response.raise_for_status()
                print(f"💾 Saved to history as {response.json()['id']}")

        except requests.RequestException as e:
            return self._error(e)

        return 0

    def history(self, delete: Optional[str] = None, clear: bool = False) -> int:
        """List, delete or clear saved visualizations"""
        try:
            if clear:
                response = self.session.delete(f"{self.api_url}/history")
                response.raise_for_status()
                print(f"🗑️  Removed {response.json()['removed']} saved visualizations")
                return 0

            if delete:
                response = self.session.delete(f"{self.api_url}/history/{delete}")
                response.raise_for_status()
                print(f"🗑️  Removed {delete}")
                return 0

            response = self.session.get(f"{self.api_url}/history")
            response.raise_for_status()
        except requests.RequestException as e:
            return self._error(e)

        records = response.json()
        if not records:
            print("No saved visualizations")
            return 0

        rows = [[r["id"][:8], r["type"], r["option"], r["timestamp"][:19]] for r in records]
        print(tabulate(rows, headers=["ID", "Type", "Option", "Saved"]))
        return 0

    def users(self, action: str, user_id: Optional[str] = None) -> int:
        """Admin user management"""
        try:
            if action == "list":
                response = self.session.get(f"{self.api_url}/admin/users")
                response.raise_for_status()
                rows = [
                    [u["id"], u["email"], u["name"], "yes" if u["approved"] else "no", "yes" if u["is_admin"] else "no"]
                    for u in response.json()
                ]
                print(tabulate(rows, headers=["ID", "Email", "Name", "Approved", "Admin"]))
            elif action == "approve":
                response = self.session.post(f"{self.api_url}/admin/approve/{user_id}")
                response.raise_for_status()
                print(f"✅ Approved {response.json()['user']['email']}")
            elif action == "delete":
                response = self.session.delete(f"{self.api_url}/admin/users/{user_id}")
                response.raise_for_status()
                print(f"🗑️  Deleted {user_id}")
        except requests.RequestException as e:
            return self._error(e)

        return 0

    def _load_shapes(self, geojson_file: str, pitch: str) -> Dict:
        with open(geojson_file, "r") as f:
            geojson = json.load(f)
        return {"geojson": geojson, "roofPitch": pitch}

def parse_options(pairs: List[str]) -> Dict[str, str]:
    """key=value pairs into a dict"""
    options = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected key=value, got: {pair}")
        options[key.strip()] = value.strip()
    return options

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="PropViz - property measurement and visualization CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  propviz geocode "1600 Amphitheatre Pkwy, Mountain View, CA"
  propviz measure lot.geojson --pitch 6/12
  propviz report lot.geojson --output lot.pdf --address "12 Elm St"
  propviz upload house.jpg
  propviz visualize https://.../house.jpg paint color="sage green" --save
  propviz history
  propviz users approve 7d1c...
        """
    )

    parser.add_argument("--api-url", default=DEFAULT_API_URL, help="API endpoint URL")
    parser.add_argument("--admin-key", default=os.getenv("PROPVIZ_ADMIN_KEY"), help="Admin API key")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    geocode_parser = subparsers.add_parser("geocode", help="Look up an address")
    geocode_parser.add_argument("address", help="Address")

    measure_parser = subparsers.add_parser("measure", help="Measure shapes from a GeoJSON file")
    measure_parser.add_argument("file", help="FeatureCollection with properties.kind = land|roof|fence")
    measure_parser.add_argument("--pitch", default="flat", help="Roof pitch (e.g. 6/12) or multiplier")

    report_parser = subparsers.add_parser("report", help="PDF report for shapes in a GeoJSON file")
    report_parser.add_argument("file", help="FeatureCollection with properties.kind = land|roof|fence")
    report_parser.add_argument("--pitch", default="flat", help="Roof pitch (e.g. 6/12) or multiplier")
    report_parser.add_argument("--output", default="measurement-report.pdf", help="Output PDF path")
    report_parser.add_argument("--address", help="Address printed on the report")
    report_parser.add_argument("--include-history", action="store_true", help="List saved visualizations")

    upload_parser = subparsers.add_parser("upload", help="Upload a photo")
    upload_parser.add_argument("image", help="Image file")

    visualize_parser = subparsers.add_parser("visualize", help="Generate an AI visualization")
    visualize_parser.add_argument("image_url", help="Public URL of the photo")
    visualize_parser.add_argument("type", choices=["paint", "fence", "roof", "flooring"], help="What to change")
    visualize_parser.add_argument("options", nargs="+", help="Options as key=value (color=..., material=..., style=...)")
    visualize_parser.add_argument("--save", action="store_true", help="Save the result to history")

    history_parser = subparsers.add_parser("history", help="Saved visualizations")
    history_group = history_parser.add_mutually_exclusive_group()
    history_group.add_argument("--delete", metavar="ID", help="Delete one entry")
    history_group.add_argument("--clear", action="store_true", help="Delete every entry")

    users_parser = subparsers.add_parser("users", help="User administration")
    users_parser.add_argument("action", choices=["list", "approve", "delete"], help="Action")
    users_parser.add_argument("user_id", nargs="?", help="User id for approve/delete")

    return parser

def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    cli = PropVizCli(args.api_url, args.admin_key)

    if args.command == "geocode":
        return cli.geocode(args.address)
    elif args.command == "measure":
        return cli.measure(args.file, args.pitch)
    elif args.command == "report":
        return cli.report(args.file, args.pitch, args.output, args.address, args.include_history)
    elif args.command == "upload":
        return cli.upload(args.image)
    elif args.command == "visualize":
        try:
            options = parse_options(args.options)
        except argparse.ArgumentTypeError as e:
            parser.error(str(e))
        return cli.visualize(args.image_url, args.type, options, args.save)
    elif args.command == "history":
        return cli.history(args.delete, args.clear)
    elif args.command == "users":
        if args.action != "list" and not args.user_id:
            parser.error(f"users {args.action} needs a user id")
        return cli.users(args.action, args.user_id)

    parser.print_help()
    return 0

if __name__ == "__main__":
    sys.exit(main())

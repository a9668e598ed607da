#!/usr/bin/env python3
import argparse
import json
import logging
import sys
from typing import Any, Dict, Optional

import airspace


def read_input(path: Optional[str]) -> str:
    if path and path != "-":
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except OSError as e:
            print(f"Error: could not read file '{path}': {e}", file=sys.stderr)
            sys.exit(2)
    # Read from stdin
    data = sys.stdin.read()
    if not data:
        print("Error: no input provided on stdin", file=sys.stderr)
        sys.exit(2)
    return data


def load_document(text: str) -> Dict[str, Any]:
    """Accept either a bare list of airspaces or an object with
    'airspaces' and optional 'services' lists."""
    doc = json.loads(text.lstrip("\ufeff"))
    if isinstance(doc, list):
        airspaces, services = doc, None
    elif isinstance(doc, dict) and isinstance(doc.get("airspaces"), list):
        airspaces, services = doc["airspaces"], doc.get("services")
    else:
        raise ValueError("expected a list of airspaces or an object with an 'airspaces' list")
    for index, entry in enumerate(airspaces):
        if not isinstance(entry, dict):
            raise ValueError(f"airspace #{index} is not an object")
    if services is not None and not (
        isinstance(services, list) and all(isinstance(s, dict) for s in services)
    ):
        raise ValueError("'services' must be a list of objects")
    return {"airspaces": airspaces, "services": services}


def write_output(path: Optional[str], geojson: Dict[str, Any]) -> None:
    text = json.dumps(geojson, ensure_ascii=False, indent=2)
    if path and path != "-":
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(text)
                f.write("\n")
        except OSError as e:
            print(f"Error: could not write file '{path}': {e}", file=sys.stderr)
            sys.exit(2)
        return
    print(text)


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="pyairspace",
        description="Convert decoded airspace boundaries (JSON) into GeoJSON polygons.",
    )
    p.add_argument(
        "input",
        nargs="?",
        help="Path to a JSON file with decoded airspaces. Use '-' or omit to read from stdin.",
        default="-",
    )
    p.add_argument(
        "-o",
        "--output",
        default="-",
        help="Path of the GeoJSON file to write. Use '-' or omit to print to stdout.",
    )
    p.add_argument(
        "--validate",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Validate built geometries.",
    )
    p.add_argument(
        "-F",
        "--fix-geometry",
        action="store_true",
        help="Try to fix invalid geometries. This may alter the airspace shape.",
    )
    p.add_argument(
        "-d",
        "--detail",
        type=int,
        default=airspace.DEFAULT_GEOMETRY_DETAIL,
        help="Steps used to approximate arcs and circles (default: %(default)s).",
    )
    p.add_argument(
        "--skip-invalid",
        action="store_true",
        help="Skip airspaces that cannot be converted instead of aborting.",
    )
    p.add_argument(
        "-w",
        "--workers",
        type=int,
        default=1,
        help="Number of worker threads (default: %(default)s).",
    )
    verbosity = p.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only report errors.",
    )
    verbosity.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log repair steps and other details.",
    )
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    level = logging.ERROR if args.quiet else logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    try:
        config = airspace.ConverterConfig(
            validate_geometries=args.validate,
            fix_geometries=args.fix_geometry,
            geometry_detail=args.detail,
            skip_invalid=args.skip_invalid,
            max_workers=args.workers,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    raw_text = read_input(args.input)
    try:
        doc = load_document(raw_text)
    except ValueError as e:
        print(f"Error: invalid input document: {e}", file=sys.stderr)
        return 2

    converter = airspace.AirspaceConverter(config, services=doc["services"])
    try:
        geojson = converter.convert(doc["airspaces"])
    except airspace.AirspaceGeometryError as e:
        print(f"Conversion error: {e}", file=sys.stderr)
        return 1

    write_output(args.output, geojson)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

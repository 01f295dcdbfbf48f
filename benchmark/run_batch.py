# -*- coding: utf-8 -*-
"""
Batch Match - post every line of an input file to a running matcher

Reads one description per line, calls POST /match for each, prints the
matched vehicle and confidence, and optionally writes a CSV report.

Usage:
    python -m benchmark.run_batch --input input.txt
    python -m benchmark.run_batch --input input.txt --url http://localhost:3000 --output results.csv
"""
import argparse
import csv
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

import requests

# ============================================================================
# CONFIGURATION
# ============================================================================

DEFAULT_URL = "http://localhost:3000"
DEFAULT_INPUT = "input.txt"
MAX_WORKERS = 5
REQUEST_TIMEOUT = 30

OUTPUT_COLUMNS = ['input', 'vehicle_id', 'confidence', 'status', 'error']


def load_descriptions(path: str) -> List[str]:
    """Load non-empty lines from the input file."""
    with open(path, 'r', encoding='utf-8') as f:
        return [line.strip() for line in f if line.strip()]


def match_description(description: str, base_url: str = DEFAULT_URL) -> Dict:
    """
    Call POST /match for one description.

    Returns a row dict; a 404 "No match" is a normal outcome, transport
    errors are reported in the 'error' column.
    """
    row = {'input': description, 'vehicle_id': '', 'confidence': 0, 'status': '', 'error': ''}

    try:
        response = requests.post(
            f"{base_url.rstrip('/')}/match",
            json={'description': description},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.exceptions.RequestException as e:
        row['status'] = 'ERROR'
        row['error'] = str(e)
        return row

    if response.status_code == 404:
        row['status'] = 'NO_MATCH'
        return row

    try:
        response.raise_for_status()
    except requests.exceptions.HTTPError as e:
        row['status'] = 'ERROR'
        row['error'] = str(e)
        return row

    data = response.json()
    row['vehicle_id'] = data.get('vehicleId') or ''
    row['confidence'] = data.get('confidence', 0)
    row['status'] = 'MATCHED'
    return row


def run_batch(descriptions: List[str], base_url: str = DEFAULT_URL, workers: int = MAX_WORKERS) -> List[Dict]:
    """Match all descriptions in parallel, results in input order."""
    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        return list(executor.map(lambda d: match_description(d, base_url), descriptions))


def write_report(results: List[Dict], path: str):
    with open(path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=OUTPUT_COLUMNS)
        writer.writeheader()
        for result in results:
            writer.writerow(result)


def print_results(results: List[Dict]):
    for r in results:
        if r['status'] == 'ERROR':
            print(f"Error matching \"{r['input']}\": {r['error']}")
            continue
        print(f"Input: {r['input']}")
        print(f"Vehicle ID: {r['vehicle_id'] or None}")
        print(f"Confidence: {r['confidence']}")
        print('---')


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Match every line of a file against a running matcher")
    parser.add_argument('--input', default=DEFAULT_INPUT, help="File with one description per line")
    parser.add_argument('--url', default=DEFAULT_URL, help="Matcher base URL")
    parser.add_argument('--workers', type=int, default=MAX_WORKERS, help="Parallel requests")
    parser.add_argument('--output', default=None, help="Optional CSV report path")
    args = parser.parse_args(argv)

    try:
        descriptions = load_descriptions(args.input)
    except OSError as e:
        print(f"ERROR: Cannot read input file {args.input}: {e}")
        return 1

    start_time = time.time()
    results = run_batch(descriptions, base_url=args.url, workers=args.workers)
    print_results(results)

    if args.output:
        write_report(results, args.output)
        print(f"Output: {args.output}")

    matched = sum(1 for r in results if r['status'] == 'MATCHED')
    errors = sum(1 for r in results if r['status'] == 'ERROR')
    print(f"\n{matched}/{len(results)} matched, {errors} errors in {time.time() - start_time:.1f}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())

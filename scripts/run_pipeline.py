#!/usr/bin/env python3
"""
Run the full Sentiment EWS pipeline for one or more locations.

For every location:
    score -> daily series -> dependency -> forecasts -> kriging -> report

Output: results/<location>/{dependency.json, forecast_*.csv,
        field_*.parquet, stages.json}

Usage:
    python scripts/run_pipeline.py
    python scripts/run_pipeline.py --location "Chicago" --location "Los Angeles"
    python scripts/run_pipeline.py --all-locations --quiet
"""
import sys
import argparse
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from sentiment_ews.common.status import COMPUTED
from sentiment_ews.config import RunConfig, load_config, get_project_root
from sentiment_ews.data.geocoding import BoundingBoxSource
from sentiment_ews.pipeline.inputs import load_location_inputs, load_shared_lexicon, output_dir_for
from sentiment_ews.pipeline.orchestrator import LocationFailure, run_locations
from sentiment_ews.pipeline.report import save_results


def main():
    parser = argparse.ArgumentParser(description="Run the Sentiment EWS pipeline")
    parser.add_argument(
        "--config",
        type=str,
        default="config/config_default.yaml",
        help="Path to config file"
    )
    parser.add_argument(
        "--location",
        action="append",
        default=None,
        help="Location to run (repeatable; default: location_name from config)"
    )
    parser.add_argument(
        "--all-locations",
        action="store_true",
        help="Run every location in the config's bounding-box table"
    )
    parser.add_argument("--quiet", action="store_true", help="Only print the summary")
    args = parser.parse_args()

    root = get_project_root()
    cfg = load_config(str(root / args.config))

    if args.all_locations:
        names = list((cfg.get('locations') or {}).keys())
    else:
        names = args.location or [cfg['location_name']]

    print("=" * 60)
    print("SENTIMENT EWS - FULL PIPELINE")
    print("=" * 60)
    print(f"Locations: {', '.join(names)}")

    lexicon = load_shared_lexicon(cfg)
    bbox_source = BoundingBoxSource.from_config(cfg)
    configs = [RunConfig.from_dict(cfg, location_name=name) for name in names]

    documents, epi = {}, {}
    for name in names:
        documents[name], epi[name] = load_location_inputs(cfg, name)

    results = run_locations(configs, documents, epi, lexicon, bbox_source, verbose=not args.quiet)

    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)
    n_failed = 0
    for name, result in results.items():
        if isinstance(result, LocationFailure):
            n_failed += 1
            print(f"✗ {name}: {result.error}")
            continue
        written = save_results(result, output_dir_for(cfg, name))
        partial = [s.stage for s in result.stages if s.status != COMPUTED]
        note = f" (not computed: {', '.join(partial)})" if partial else ""
        print(f"✓ {name}: {len(written)} files → {output_dir_for(cfg, name)}{note}")

    return 1 if n_failed else 0


if __name__ == "__main__":
    sys.exit(main())

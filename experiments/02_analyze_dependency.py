#!/usr/bin/env python3
"""
Experiment 02: Analyze Dependency

Relationship between daily positivity and each outcome:
- Pearson correlation on complete cases
- Mutual information per lag 0..max_lag and the MI-optimal lag
- Transfer entropy positivity -> outcome at that lag

The lag profile shows how far sentiment leads demand, if at all.

Output: results/<location>/dependency.json

Usage:
    python experiments/02_analyze_dependency.py
    python experiments/02_analyze_dependency.py --max-lag 21
"""
import sys
import argparse
from dataclasses import replace
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

import numpy as np

from sentiment_ews.config import RunConfig, load_config, get_project_root
from sentiment_ews.features.lexicon import score_documents
from sentiment_ews.pipeline.inputs import load_location_inputs, load_shared_lexicon, output_dir_for
from sentiment_ews.pipeline.orchestrator import build_daily_frame, run_dependency
from sentiment_ews.pipeline.report import write_json


def print_lag_profile(name: str, profile: dict, optimal_lag: int) -> None:
    print(f"\nLag profile: positivity → {name}")
    print("-" * 40)
    for lag, mi in profile.items():
        marker = " ←" if lag == optimal_lag else ""
        value = "     n/a" if np.isnan(mi) else f"{mi:8.4f}"
        print(f"  lag {lag:>2}: {value}{marker}")


def main():
    parser = argparse.ArgumentParser(description="Estimate sentiment/outcome dependency")
    parser.add_argument(
        "--config",
        type=str,
        default="config/config_default.yaml",
        help="Path to config file"
    )
    parser.add_argument("--location", type=str, default=None, help="Location name (default: from config)")
    parser.add_argument("--max-lag", type=int, default=None, help="Override max_lag from config")
    args = parser.parse_args()

    root = get_project_root()
    cfg = load_config(str(root / args.config))
    config = RunConfig.from_dict(cfg, location_name=args.location)
    if args.max_lag is not None:
        config = replace(config, max_lag=args.max_lag)

    print("=" * 60)
    print(f"SENTIMENT EWS - DEPENDENCY ANALYSIS ({config.location_name})")
    print("=" * 60)

    lexicon = load_shared_lexicon(cfg)
    documents, epi = load_location_inputs(cfg, config.location_name)
    records = score_documents(documents, lexicon, neutral_band=config.neutral_band)
    daily = build_daily_frame(records, epi, config)

    print(f"\nEstimating dependency (max_lag={config.max_lag}, kernel_width={config.kernel_width})...")
    results = run_dependency(daily, config)

    for name, result in results.items():
        if result.is_computed:
            print_lag_profile(name, result.lag_profile, result.optimal_lag)
            if result.lag_forced:
                print("  (lag 0 never beaten; lag 1 imposed)")

    out_dir = output_dir_for(cfg, config.location_name)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / 'dependency.json'
    write_json(out_path, {
        'location': config.location_name,
        'max_lag': config.max_lag,
        'kernel_width': config.kernel_width,
        'pairs': {name: result.to_dict() for name, result in results.items()},
    })

    print(f"\n✓ Results saved to {out_path}")


if __name__ == "__main__":
    main()

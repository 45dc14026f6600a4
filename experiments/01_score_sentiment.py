#!/usr/bin/env python3
"""
Experiment 01: Score Sentiment

Scores one location's documents against the positivity lexicon and builds
the daily series every later stage consumes:
- SentimentRecords (one per informative document)
- Daily positivity, new cases, new hospitalizations

Output: results/<location>/sentiment_records.parquet
        results/<location>/daily_series.parquet

Usage:
    python experiments/01_score_sentiment.py
    python experiments/01_score_sentiment.py --location "Chicago"
"""
import sys
import argparse
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from sentiment_ews.config import RunConfig, load_config, get_project_root
from sentiment_ews.features.lexicon import score_documents
from sentiment_ews.pipeline.inputs import load_location_inputs, load_shared_lexicon, output_dir_for
from sentiment_ews.pipeline.orchestrator import build_daily_frame


def main():
    parser = argparse.ArgumentParser(description="Score documents into daily positivity")
    parser.add_argument(
        "--config",
        type=str,
        default="config/config_default.yaml",
        help="Path to config file"
    )
    parser.add_argument("--location", type=str, default=None, help="Location name (default: from config)")
    args = parser.parse_args()

    root = get_project_root()
    cfg = load_config(str(root / args.config))
    config = RunConfig.from_dict(cfg, location_name=args.location)

    print("=" * 60)
    print(f"SENTIMENT EWS - SCORE SENTIMENT ({config.location_name})")
    print("=" * 60)

    lexicon = load_shared_lexicon(cfg)
    documents, epi = load_location_inputs(cfg, config.location_name)

    print("\nScoring documents...")
    records = score_documents(documents, lexicon, neutral_band=config.neutral_band)
    print(f"  → {len(records)}/{len(documents)} documents informative")
    print(f"  → {int(records['lng'].notna().sum())} geotagged records")

    daily = build_daily_frame(records, epi, config)
    print(f"\nDaily series: {len(daily)} days")
    for column in daily.columns:
        print(f"  {column:<22} {int(daily[column].notna().sum()):>5} observed days")

    out_dir = output_dir_for(cfg, config.location_name)
    out_dir.mkdir(parents=True, exist_ok=True)
    records.to_parquet(out_dir / 'sentiment_records.parquet', index=False)
    daily.to_parquet(out_dir / 'daily_series.parquet')

    print(f"\n✓ Records and daily series saved to {out_dir}")


if __name__ == "__main__":
    main()

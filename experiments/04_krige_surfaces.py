#!/usr/bin/env python3
"""
Experiment 04: Krige Surfaces

Interpolates over the location's bounding box:
1. Sentiment field: ordinary kriging of record-level positivity
2. Hospitalization field: kriging with external drift, positivity as drift

Output: results/<location>/field_<name>.parquet
        results/<location>/variograms.json

Usage:
    python experiments/04_krige_surfaces.py
    python experiments/04_krige_surfaces.py --variogram exponential --grid 2000
"""
import sys
import argparse
from dataclasses import replace
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from sentiment_ews.common.errors import SpatialError
from sentiment_ews.config import RunConfig, load_config, get_project_root
from sentiment_ews.data.geocoding import BoundingBoxSource
from sentiment_ews.features.lexicon import score_documents
from sentiment_ews.models.kriging import VARIOGRAM_MODELS
from sentiment_ews.pipeline.inputs import load_location_inputs, load_shared_lexicon, output_dir_for
from sentiment_ews.pipeline.orchestrator import build_daily_frame, run_kriging
from sentiment_ews.pipeline.report import write_json


def main():
    parser = argparse.ArgumentParser(description="Krige sentiment and hospitalization surfaces")
    parser.add_argument(
        "--config",
        type=str,
        default="config/config_default.yaml",
        help="Path to config file"
    )
    parser.add_argument("--location", type=str, default=None, help="Location name (default: from config)")
    parser.add_argument("--variogram", type=str, default=None, choices=sorted(VARIOGRAM_MODELS),
                        help="Override variogram_model")
    parser.add_argument("--grid", type=int, default=None, help="Override grid_sample_count")
    args = parser.parse_args()

    root = get_project_root()
    cfg = load_config(str(root / args.config))
    config = RunConfig.from_dict(cfg, location_name=args.location)
    if args.variogram is not None:
        config = replace(config, variogram_model=args.variogram)
    if args.grid is not None:
        config = replace(config, grid_sample_count=args.grid)

    print("=" * 60)
    print(f"SENTIMENT EWS - KRIGE SURFACES ({config.location_name})")
    print("=" * 60)

    bbox_source = BoundingBoxSource.from_config(cfg)
    matched, score = bbox_source.match(config.location_name)
    bbox = bbox_source.lookup(config.location_name)
    print(f"Bounding box: {matched} (match score {score:.0f})")

    lexicon = load_shared_lexicon(cfg)
    documents, epi = load_location_inputs(cfg, config.location_name)
    records = score_documents(documents, lexicon, neutral_band=config.neutral_band)
    daily = build_daily_frame(records, epi, config)

    print(f"\nKriging ({config.variogram_model} variogram, seed={config.seed})...")
    try:
        fields = run_kriging(records, daily, bbox, config)
    except SpatialError as exc:
        print(f"\n✗ Spatial stage not computed: {exc}")
        return 1

    out_dir = output_dir_for(cfg, config.location_name)
    out_dir.mkdir(parents=True, exist_ok=True)
    for name, field in fields.items():
        field.frame.to_parquet(out_dir / f"field_{name}.parquet", index=False)
        v = field.variogram
        print(f"  {name:<22} nugget={v.nugget:.4f} sill={v.sill:.4f} range={v.range:.4f}")

    write_json(out_dir / 'variograms.json', {
        name: {**field.variogram.to_dict(), 'n_support': field.n_support, 'covariate': field.covariate}
        for name, field in fields.items()
    })

    print(f"\n✓ Surfaces saved to {out_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

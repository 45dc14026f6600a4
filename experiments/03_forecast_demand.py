#!/usr/bin/env python3
"""
Experiment 03: Forecast Demand

Two-stage conditional forecast from the training cutoff:
1. ARIMA on daily positivity alone
2. ARIMA on cases / hospitalizations with positivity as regressor,
   driven forward by the step-1 forecast

When the data continue past the cutoff, the held-out days score each
forecast (MAE, RMSE, 80% / 95% interval coverage).

Output: results/<location>/forecast_<series>.csv
        results/<location>/forecast_metrics.json

Usage:
    python experiments/03_forecast_demand.py
    python experiments/03_forecast_demand.py --horizon 7 --cutoff 2020-05-31
"""
import sys
import argparse
from dataclasses import replace
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

import pandas as pd

from sentiment_ews.config import RunConfig, load_config, get_project_root
from sentiment_ews.evaluation.metrics import evaluate_forecast, print_metrics
from sentiment_ews.features.lexicon import score_documents
from sentiment_ews.pipeline.inputs import load_location_inputs, load_shared_lexicon, output_dir_for
from sentiment_ews.pipeline.orchestrator import build_daily_frame, run_forecasts
from sentiment_ews.pipeline.report import write_json


def main():
    parser = argparse.ArgumentParser(description="Conditional ARIMA demand forecast")
    parser.add_argument(
        "--config",
        type=str,
        default="config/config_default.yaml",
        help="Path to config file"
    )
    parser.add_argument("--location", type=str, default=None, help="Location name (default: from config)")
    parser.add_argument("--horizon", type=int, default=None, help="Override forecast_horizon")
    parser.add_argument("--cutoff", type=str, default=None, help="Override training_cutoff_date (YYYY-MM-DD)")
    args = parser.parse_args()

    root = get_project_root()
    cfg = load_config(str(root / args.config))
    config = RunConfig.from_dict(cfg, location_name=args.location)
    if args.horizon is not None:
        config = replace(config, forecast_horizon=args.horizon)
    if args.cutoff is not None:
        config = replace(config, training_cutoff_date=pd.Timestamp(args.cutoff).date())

    print("=" * 60)
    print(f"SENTIMENT EWS - FORECAST DEMAND ({config.location_name})")
    print("=" * 60)
    print(f"Cutoff: {config.training_cutoff_date}, horizon: {config.forecast_horizon} days")

    lexicon = load_shared_lexicon(cfg)
    documents, epi = load_location_inputs(cfg, config.location_name)
    records = score_documents(documents, lexicon, neutral_band=config.neutral_band)
    daily = build_daily_frame(records, epi, config)

    print("\nFitting models...")
    forecasts = run_forecasts(daily, config)

    out_dir = output_dir_for(cfg, config.location_name)
    out_dir.mkdir(parents=True, exist_ok=True)

    cutoff = pd.Timestamp(config.training_cutoff_date)
    metrics = {}
    for name, result in forecasts.items():
        result.frame.to_csv(out_dir / f"forecast_{name}.csv", index=False)
        held_out = daily[name].loc[daily.index > cutoff]
        metrics[name] = {'order': list(result.order), 'aic': result.aic, **evaluate_forecast(result.frame, held_out)}
        if metrics[name]['n_evaluated']:
            print_metrics(metrics[name], title=f"{name} (out-of-sample)")
        else:
            print(f"\n{name}: no observed days after the cutoff to evaluate")

    write_json(out_dir / 'forecast_metrics.json', {
        'location': config.location_name,
        'training_cutoff_date': str(config.training_cutoff_date),
        'horizon': config.forecast_horizon,
        'series': metrics,
    })

    print(f"\n✓ Forecasts and metrics saved to {out_dir}")


if __name__ == "__main__":
    main()

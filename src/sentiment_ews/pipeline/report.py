"""
Report Sink - persist one location's PipelineResult

Layout under output_dir:
    dependency.json          one entry per outcome
    forecast_<name>.csv      one file per forecast series
    field_<name>.parquet     one file per kriged surface
    stages.json              stage outcomes plus variogram parameters
"""
import json
import math
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Union

import numpy as np

from sentiment_ews.pipeline.orchestrator import PipelineResult


def convert_to_serializable(obj: Any) -> Any:
    """numpy scalars to Python, NaN / inf to None (JSON has no NaN)."""
    if isinstance(obj, dict):
        return {str(k): convert_to_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [convert_to_serializable(v) for v in obj]
    if isinstance(obj, np.ndarray):
        return convert_to_serializable(obj.tolist())
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, (float, np.floating)):
        return float(obj) if math.isfinite(obj) else None
    return obj


def write_json(path: Path, payload: Dict[str, Any]) -> None:
    with open(path, 'w') as f:
        json.dump(convert_to_serializable(payload), f, indent=2)


def save_results(result: PipelineResult, output_dir: Union[str, Path]) -> List[Path]:
    """
    Write a PipelineResult to disk.

    Args:
        result: Output of run_location()
        output_dir: Directory for this location's files (created if needed)

    Returns:
        Paths of the files written
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []

    dependency_path = output_dir / 'dependency.json'
    write_json(dependency_path, {
        'location': result.location_name,
        'pairs': {name: dep.to_dict() for name, dep in result.dependency.items()},
    })
    written.append(dependency_path)

    for name, forecast in result.forecasts.items():
        path = output_dir / f"forecast_{name}.csv"
        frame = forecast.frame.copy()
        frame['order'] = str(forecast.order)
        frame['aic'] = forecast.aic
        frame.to_csv(path, index=False)
        written.append(path)

    for name, spatial in result.fields.items():
        path = output_dir / f"field_{name}.parquet"
        spatial.frame.to_parquet(path, index=False)
        written.append(path)

    stages_path = output_dir / 'stages.json'
    write_json(stages_path, {
        'timestamp': datetime.now().isoformat(),
        'location': result.location_name,
        'bbox': {
            'min_lng': result.bbox.min_lng, 'min_lat': result.bbox.min_lat,
            'max_lng': result.bbox.max_lng, 'max_lat': result.bbox.max_lat,
        },
        'n_records': len(result.records),
        'stages': [stage.to_dict() for stage in result.stages],
        'variograms': {
            name: {**spatial.variogram.to_dict(), 'n_support': spatial.n_support, 'covariate': spatial.covariate}
            for name, spatial in result.fields.items()
        },
    })
    written.append(stages_path)

    return written

"""Flat engine configuration with per-component views."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any
import json

from videocoseg.algorithms.graph_cut import GraphCutConfig
from videocoseg.algorithms.running_average import RunningAverageConfig
from videocoseg.reset_policy import AutoResetConfig

# Section keys spelled like the component config fields they feed.
_SECTION_KEYS: dict[str, dict[str, str]] = {
    "engine": {},
    "reset": {"enabled": "auto_model_reset", "cooldown_frames": "reset_cooldown_frames"},
    "running_average": {},
    "graph_cut": {"learning_rate": "graph_learning_rate"},
}


@dataclass(slots=True)
class EngineConfig:
    # ---- Engine ----
    algorithm: str = "running_average"   # "running_average" | "graph_cut"
    streams: int = 1
    outputs: int = 0                      # 0 = same as streams

    # ---- Automatic reset ----
    auto_model_reset: bool = False
    reset_cooldown_frames: int = 30
    min_frames_before_reset: int = 1
    drift_threshold: float = 0.5

    # ---- Running average ----
    learning_rate: float = 0.05
    fg_threshold: float = 30.0
    min_stream_votes: int = 1
    freeze_fg_update: bool = True
    drift_patience: int = 5
    drift_iou_threshold: float = 0.5
    drift_area_threshold: float = 0.5

    # ---- Graph cut ----
    graph_learning_rate: float = 0.1
    unary_scale: float = 30.0
    smoothness_weight: float = 0.5
    cross_stream_weight: float = 0.5

    def auto_reset_config(self) -> AutoResetConfig:
        return AutoResetConfig(
            enabled=self.auto_model_reset,
            cooldown_frames=self.reset_cooldown_frames,
            min_frames_before_reset=self.min_frames_before_reset,
            drift_threshold=self.drift_threshold,
        )

    def running_average_config(self) -> RunningAverageConfig:
        return RunningAverageConfig(
            learning_rate=self.learning_rate,
            fg_threshold=self.fg_threshold,
            min_stream_votes=self.min_stream_votes,
            freeze_fg_update=self.freeze_fg_update,
            drift_patience=self.drift_patience,
            drift_iou_threshold=self.drift_iou_threshold,
            drift_area_threshold=self.drift_area_threshold,
        )

    def graph_cut_config(self) -> GraphCutConfig:
        return GraphCutConfig(
            learning_rate=self.graph_learning_rate,
            unary_scale=self.unary_scale,
            smoothness_weight=self.smoothness_weight,
            cross_stream_weight=self.cross_stream_weight,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_file(self, path: str | Path) -> None:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        data = self.to_dict()
        if output_path.suffix.lower() == ".json":
            output_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            return
        try:
            import yaml
        except Exception as exc:
            raise RuntimeError("YAML output requires PyYAML (`pip install pyyaml`).") from exc
        output_path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "EngineConfig":
        if not raw:
            return cls()

        merged = dict(raw)
        for section_name, aliases in _SECTION_KEYS.items():
            section = raw.get(section_name)
            if isinstance(section, dict):
                merged.update({aliases.get(k, k): v for k, v in section.items()})

        valid_names = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in merged.items() if k in valid_names}
        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: str | Path) -> "EngineConfig":
        cfg_path = Path(path)
        if not cfg_path.exists():
            raise FileNotFoundError(f"Config file not found: {cfg_path}")
        text = cfg_path.read_text(encoding="utf-8")
        if cfg_path.suffix.lower() == ".json":
            payload = json.loads(text) if text.strip() else {}
            return cls.from_dict(payload)

        try:
            import yaml
        except Exception as exc:
            raise RuntimeError("YAML config parsing requires PyYAML (`pip install pyyaml`).") from exc
        payload = yaml.safe_load(text) or {}
        if not isinstance(payload, dict):
            raise ValueError(f"Config root must be a mapping, got {type(payload).__name__}")
        return cls.from_dict(payload)

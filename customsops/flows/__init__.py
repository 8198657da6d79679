"""Automation flow runs: transformation, filtering and de-duplication"""

from __future__ import annotations

from customsops.flows.runs import dedupe_runs, filter_runs, transform_run

__all__ = ["dedupe_runs", "filter_runs", "transform_run"]

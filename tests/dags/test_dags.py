"""
Tests for DAG Validation

Tests that the market signals DAG imports and has the expected configuration.
"""
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

pytest.importorskip("airflow")

from dags import daily_market_signals  # noqa: E402


def make_context(signals, summaries):
    ti = MagicMock()
    ti.xcom_pull.side_effect = lambda task_ids, key: {
        'detect_and_map_signals': signals,
        'compile_summaries': summaries,
    }[task_ids]
    return {'task_instance': ti}


class TestDAGConfiguration:
    """Tests for the daily_market_signals DAG."""

    def test_dag_identity(self):
        dag = daily_market_signals.dag

        assert dag.dag_id == 'daily_market_signals'
        assert dag.catchup is False
        assert 'signals' in dag.tags

    def test_schedule(self):
        dag = daily_market_signals.dag
        schedule = getattr(dag, 'schedule_interval', None) or getattr(dag, 'schedule', None)

        assert str(schedule) == '0 5 * * *'

    def test_task_order(self):
        dag = daily_market_signals.dag

        assert set(dag.task_ids) == {'detect_and_map_signals', 'compile_summaries', 'validate_run'}
        assert dag.get_task('detect_and_map_signals').downstream_task_ids == {'compile_summaries'}
        assert dag.get_task('compile_summaries').downstream_task_ids == {'validate_run'}

    def test_default_args(self):
        assert daily_market_signals.default_args['retries'] == 2
        assert daily_market_signals.default_args['retry_delay'] == timedelta(minutes=5)


class TestValidateRun:
    """Tests for the validate_run task."""

    def test_passes_when_every_tenant_succeeds(self):
        context = make_context(
            {'org-1': {'truth_created': 1, 'portal_created': 3, 'mappings_created': 4, 'errors': []}},
            {'org-1': {'market': {'summaries_created': 1}, 'investor': {'summaries_created': 1}, 'errors': []}},
        )

        daily_market_signals.validate_run(**context)

    def test_raises_listing_failed_tenants(self):
        context = make_context(
            {'org-1': {'errors': []}, 'org-2': {'errors': ['portal failed']}},
            {'org-1': {'errors': ['summary failed']}, 'org-2': {'errors': []}},
        )

        with pytest.raises(ValueError, match="org-1, org-2"):
            daily_market_signals.validate_run(**context)

    def test_no_tenants(self):
        daily_market_signals.validate_run(**make_context(None, None))

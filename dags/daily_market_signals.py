"""
Daily Market Signals DAG

Detects market signals from the latest official and portal snapshots, maps
them to investor mandates and compiles the AI market and investor summaries
for every scheduled tenant.

Schedule: Daily at 5:00 AM (after snapshot ingestion)
"""
from datetime import date, datetime, timedelta

from airflow import DAG
from airflow.operators.python import PythonOperator

from config.settings import settings
from src.dealflow.pipelines.signals_pipeline import run_signals_pipeline
from src.dealflow.pipelines.summary_pipeline import run_summaries_pipeline
from src.dealflow.utils.logger import get_logger, setup_logging, tenant_context

setup_logging()
logger = get_logger(__name__)

# DAG default arguments
default_args = {
    'owner': 'dealflow',
    'depends_on_past': False,
    'email_on_failure': False,
    'email_on_retry': False,
    'retries': 2,
    'retry_delay': timedelta(minutes=5),
    'execution_timeout': timedelta(hours=1),
}


def run_signals_for_tenants(**context):
    """
    Run the signals pipeline for every scheduled tenant.

    Returns:
        Per-tenant pipeline results
    """
    tenants = settings.scheduled_tenants
    logger.info("scheduled_signals_started", tenants=len(tenants))

    results = {}
    for tenant_id in tenants:
        with tenant_context(tenant_id, trigger="dag"):
            results[tenant_id] = run_signals_pipeline(tenant_id).to_dict()

    context['task_instance'].xcom_push(key='signals_results', value=results)
    return results


def compile_summaries_for_tenants(**context):
    """Compile today's AI market and investor summaries for every scheduled tenant."""
    as_of = context.get('ds')
    as_of_date = date.fromisoformat(as_of) if as_of else None

    results = {}
    for tenant_id in settings.scheduled_tenants:
        with tenant_context(tenant_id, trigger="dag"):
            results[tenant_id] = run_summaries_pipeline(tenant_id, as_of_date=as_of_date).to_dict()

    context['task_instance'].xcom_push(key='summary_results', value=results)
    return results


def validate_run(**context):
    """
    Validate that every tenant completed both stages.

    Raises:
        ValueError: If any tenant reported errors
    """
    ti = context['task_instance']
    signals = ti.xcom_pull(task_ids='detect_and_map_signals', key='signals_results') or {}
    summaries = ti.xcom_pull(task_ids='compile_summaries', key='summary_results') or {}

    failed = sorted(
        {tenant for tenant, r in signals.items() if r.get('errors')}
        | {tenant for tenant, r in summaries.items() if r.get('errors')}
    )

    logger.info(
        "market_signals_run_summary",
        tenants=len(signals),
        signals_created=sum(r.get('truth_created', 0) + r.get('portal_created', 0) for r in signals.values()),
        mappings_created=sum(r.get('mappings_created', 0) for r in signals.values()),
        failed=failed
    )

    if failed:
        raise ValueError(f"Market signals run failed for tenants: {', '.join(failed)}")


# Define the DAG
with DAG(
    'daily_market_signals',
    default_args=default_args,
    description='Daily market signal detection, investor mapping and AI summaries',
    schedule='0 5 * * *',  # 5:00 AM daily
    start_date=datetime(2025, 1, 1),
    catchup=False,
    tags=['signals', 'market', 'summaries'],
) as dag:

    detect_task = PythonOperator(
        task_id='detect_and_map_signals',
        python_callable=run_signals_for_tenants,
    )

    summaries_task = PythonOperator(
        task_id='compile_summaries',
        python_callable=compile_summaries_for_tenants,
    )

    validate_task = PythonOperator(
        task_id='validate_run',
        python_callable=validate_run,
    )

    detect_task >> summaries_task >> validate_task

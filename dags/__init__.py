"""
Airflow DAGs Package

Contains the DAG definitions for the scheduled market intelligence runs.

DAGs:
- daily_market_signals: Detect and map signals, then compile AI summaries (5:00 AM)
"""

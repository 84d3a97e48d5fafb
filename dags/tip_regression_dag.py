"""
DAG for Tip Regression - Model Training and Evaluation
Handles: --sample-seed, --split-seed, --sample-size, --include-fare
"""

from datetime import datetime, timedelta
from airflow import DAG
from airflow.operators.bash import BashOperator

default_args = {
    "owner": "airflow",
    "depends_on_past": False,
    "email_on_failure": False,
    "email_on_retry": False,
    "retries": 0,
    "retry_delay": timedelta(minutes=5),
}

with DAG(
    dag_id="tip_regression_dag",
    default_args=default_args,
    description="Fit and evaluate tip amount regression models on trip/fare data",
    schedule=None,
    start_date=datetime(2024, 1, 1),
    catchup=False,
    tags=["ml", "regression", "taxi"],
    params={
        "sample_seed": "42",
        "split_seed": "1234",
        "sample_size": "1000",
        "include_fare": False,
    },
) as dag:

    train_tip_models = BashOperator(
        task_id="train_tip_models",
        bash_command=(
            "docker exec nyc-taxi-tips python -m taxi_tips.jobs.tip_regression_job "
            "--sample-seed {{ params.sample_seed }} "
            "--split-seed {{ params.split_seed }} "
            "--sample-size {{ params.sample_size }}"
            "{{ ' --include-fare' if params.include_fare else '' }}"
        ),
    )

"""Conftest for DAG tests - replaces Airflow modules with lightweight stand-ins."""
import sys
from unittest.mock import MagicMock

# Operators created inside a `with DAG(...)` block attach to this DAG
_current_dag = None


class MockDAG:
    def __init__(self, dag_id, default_args=None, description=None, schedule=None,
                 start_date=None, catchup=False, tags=None, params=None):
        self.dag_id = dag_id
        self.default_args = default_args or {}
        self.description = description
        self.schedule = schedule
        self.start_date = start_date
        self.catchup = catchup
        self.tags = tags or []
        self.params = {}
        self._tasks = []

        # Airflow wraps params in Param objects exposing .value
        for key, value in (params or {}).items():
            param = MagicMock()
            param.value = value
            self.params[key] = param

    def __enter__(self):
        global _current_dag
        _current_dag = self
        return self

    def __exit__(self, *args):
        global _current_dag
        _current_dag = None

    @property
    def tasks(self):
        return self._tasks

    def get_task(self, task_id):
        return next((t for t in self._tasks if t.task_id == task_id), None)


class MockBashOperator:
    def __init__(self, task_id, bash_command, dag=None):
        self.task_id = task_id
        self.bash_command = bash_command
        target = dag or _current_dag
        if target is not None:
            target._tasks.append(self)


airflow_mock = MagicMock()
airflow_mock.DAG = MockDAG

operators_mock = MagicMock()
operators_mock.bash.BashOperator = MockBashOperator

sys.modules['airflow'] = airflow_mock
sys.modules['airflow.operators'] = operators_mock
sys.modules['airflow.operators.bash'] = operators_mock.bash

from .config import load_config, loads_config, TaskConfig
from .dsl import pipeline, checkout, toolchain_install, tool_install, invoke, report, upload
from .env import Environment, EnvResolver
from .executor import TaskExecutor, SubprocessRunner
from .pipeline import PipelineDriver, load_pipeline
from .store import TaskStore
from .model import EnvironmentVariable, TaskDefinition, PipelineStep, Trigger, ExecutionResult, PipelineResult

__all__ = [
    "load_config", "loads_config", "TaskConfig",
    "pipeline", "checkout", "toolchain_install", "tool_install", "invoke", "report", "upload",
    "Environment", "EnvResolver", "TaskExecutor", "SubprocessRunner",
    "PipelineDriver", "load_pipeline", "TaskStore",
    "EnvironmentVariable", "TaskDefinition", "PipelineStep", "Trigger", "ExecutionResult", "PipelineResult",
]

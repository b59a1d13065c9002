from hyscript.hyscript_errors import ScriptError, Suggestions
from hyscript.hyscript_parser import Parser
from hyscript.hyscript_interpreter import evaluate
from hyscript.hyscript_inference import get_suggestions
from hyscript.hyscript_runtime import ExecutionResult, ScriptRunner

__all__ = [
    "ScriptError",
    "Suggestions",
    "Parser",
    "evaluate",
    "get_suggestions",
    "ExecutionResult",
    "ScriptRunner",
]

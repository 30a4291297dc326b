"""Built-in tools for Alfred."""

from alfred.tools.builtin.bash import BashTool
from alfred.tools.builtin.edit_file import EditFileTool
from alfred.tools.builtin.read_file import ReadFileTool
from alfred.tools.builtin.registration import register_builtin_tools
from alfred.tools.builtin.task_write import TaskStore, TaskWriteTool
from alfred.tools.builtin.write_file import WriteFileTool

__all__ = [
    "BashTool",
    "EditFileTool",
    "ReadFileTool",
    "TaskStore",
    "TaskWriteTool",
    "WriteFileTool",
    "register_builtin_tools",
]

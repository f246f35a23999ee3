"""Line-by-line console reporting of test outcomes."""

from scenario_tests.models.events import (
    AssemblyFinished,
    ExecutionEvent,
    TestFailed,
    TestSkipped,
)


class ConsoleSink:
    """Prints skipped and failed tests as they happen.

    Passing tests produce no output.
    """

    def on_event(self, event: ExecutionEvent, /) -> None:
        """Print the line for an event, if it has one."""
        match event:
            case TestSkipped(test_case=test_case):
                print(f"[SKIP] {test_case.display_name}")
            case TestFailed(test_case=test_case, failure=failure):
                print(
                    f"[FAIL] {test_case.display_name}\n"
                    f"{failure.combined_message()}\n"
                    f"{failure.combined_stack_trace()}"
                )
            case AssemblyFinished(assembly=assembly):
                print(f"Finished {assembly}\n")

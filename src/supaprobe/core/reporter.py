"""
Console and JSON reporting of probe results
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, List, Optional

from supaprobe.models.operations import ProbeSequence
from supaprobe.models.results import (
    STATUS_ERROR, STATUS_FAILED, STATUS_PASSED, STATUS_SKIPPED,
    SequenceResult, StepResult,
)

STATUS_ICONS = {
    STATUS_PASSED: "✅",
    STATUS_FAILED: "❌",
    STATUS_ERROR: "💥",
    STATUS_SKIPPED: "⏭️ ",
}


class Reporter:
    """Receives progress callbacks from the runner"""

    def sequence_started(self, sequence: ProbeSequence) -> None:
        pass

    def step_finished(self, result: StepResult) -> None:
        pass

    def sequence_finished(self, result: SequenceResult) -> None:
        pass

    def run_finished(self, results: List[SequenceResult]) -> None:
        pass


class ConsoleReporter(Reporter):
    """Human-readable status lines"""

    def __init__(self, stream: Optional[IO[str]] = None, verbose: bool = False):
        self.stream = stream or sys.stdout
        self.verbose = verbose
        self._cleanup_header_printed = False

    def _print(self, text: str = "") -> None:
        print(text, file=self.stream)

    def sequence_started(self, sequence: ProbeSequence) -> None:
        self._cleanup_header_printed = False
        self._print(f"\n🔄 {sequence.name}")
        if sequence.description:
            self._print(f"   {sequence.description}")

    def step_finished(self, result: StepResult) -> None:
        if result.cleanup and not self._cleanup_header_printed:
            self._print("   🧹 Cleanup")
            self._cleanup_header_printed = True

        icon = STATUS_ICONS.get(result.status, "•")
        line = f"   {icon} [{result.index}] {result.name} ({result.duration:.3f}s)"
        if result.row_count is not None:
            line += f" rows={result.row_count}"
        if result.message and result.status != STATUS_PASSED:
            line += f": {result.message}"
        elif result.message and self.verbose:
            line += f" - {result.message}"
        self._print(line)

        for detail in result.details:
            self._print(f"      {detail}")

    def sequence_finished(self, result: SequenceResult) -> None:
        summary = result.get_success_summary()
        if result.exception:
            self._print(f"   💥 Aborted by exception: {result.exception}")
        elif result.aborted:
            self._print("   ⚠️  Aborted after a failed step")

        icon = "🎯" if result.passed else "⚠️ "
        self._print(
            f"   {icon} {summary['passed']}/{summary['total_steps']} passed, "
            f"{summary['failed']} failed, {summary['errors']} errors, "
            f"{summary['skipped']} skipped in {result.duration:.3f}s"
        )

    def run_finished(self, results: List[SequenceResult]) -> None:
        if len(results) < 2:
            return
        passed = len([r for r in results if r.passed])
        self._print("\n📊 Run Summary:")
        for result in results:
            self._print(f"   {'✅' if result.passed else '❌'} {result.name}")
        self._print(f"   {passed}/{len(results)} probes passed")


class JsonReporter(Reporter):
    """Machine-checkable report written once the run ends"""

    def __init__(self, output: Optional[str] = None, stream: Optional[IO[str]] = None):
        self.output = output
        self.stream = stream or sys.stdout

    def build_report(self, results: List[SequenceResult]) -> dict:
        return {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "passed": all(r.passed for r in results),
            "sequences": [r.to_dict() for r in results],
        }

    def run_finished(self, results: List[SequenceResult]) -> None:
        document = json.dumps(self.build_report(results), indent=2, default=str, ensure_ascii=False)
        if self.output:
            Path(self.output).write_text(document + "\n", encoding="utf-8")
        else:
            print(document, file=self.stream)

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from textqa_agent.data import CaseResult, ExecutionRecord


class ResultAggregator:
    """Summarizes a run and writes JSON and HTML reports."""

    def __init__(self):
        self._env = Environment(
            loader=PackageLoader("textqa_agent", "templates"),
            autoescape=select_autoescape(["html", "html.j2"]),
        )

    def aggregate_results(
        self,
        file_results: Dict[str, List[CaseResult]],
        history: Optional[List[ExecutionRecord]] = None,
    ) -> Dict[str, Any]:
        """Aggregate per-file case results into one summary.

        Args:
            file_results: scenario file path -> case results, in run order
            history: the step executor's execution records

        Returns:
            Aggregated results dictionary
        """
        cases = [case for results in file_results.values() for case in results]
        history = history or []
        total_steps = len(history)
        failed_steps = sum(1 for record in history if not record.success)

        summary = {
            "generated_at": datetime.now().isoformat(timespec="seconds"),
            "statistics": {
                "scenario_files": len(file_results),
                "total_cases": len(cases),
                "passed_cases": sum(1 for c in cases if c.passed),
                "failed_cases": sum(1 for c in cases if not c.passed),
                "total_steps": total_steps,
                "failed_steps": failed_steps,
                "multiline_steps": sum(c.multiline_steps for c in cases),
                "total_duration_ms": sum(c.duration for c in cases),
            },
            "files": [
                {
                    "file": path,
                    "cases": [case.model_dump() for case in results],
                }
                for path, results in file_results.items()
            ],
            "issues": [
                {
                    "case": case.name,
                    "step": case.failed_step,
                    "error": case.error,
                }
                for case in cases
                if not case.passed
            ],
        }
        logging.info(
            f"Run summary: {summary['statistics']['passed_cases']}/{summary['statistics']['total_cases']} cases passed"
        )
        return summary

    def _report_dir(self, report_dir: Optional[str]) -> str:
        if report_dir is None:
            timestamp = os.getenv("TEXTQA_TIMESTAMP") or datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
            report_dir = os.path.join("reports", f"test_{timestamp}")
        os.makedirs(report_dir, exist_ok=True)
        return report_dir

    def generate_json_report(self, summary: Dict[str, Any], report_dir: Optional[str] = None) -> str:
        report_dir = self._report_dir(report_dir)
        json_path = os.path.join(report_dir, "report.json")
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2, ensure_ascii=False, default=str)
        absolute_path = os.path.abspath(json_path)
        logging.debug(f"JSON report generated: {absolute_path}")
        return absolute_path

    def generate_html_report(self, summary: Dict[str, Any], report_dir: Optional[str] = None) -> str:
        report_dir = self._report_dir(report_dir)
        template = self._env.get_template("report.html.j2")
        html_path = os.path.join(report_dir, "report.html")
        with open(html_path, "w", encoding="utf-8") as f:
            f.write(template.render(summary=summary))
        absolute_path = os.path.abspath(html_path)
        logging.debug(f"HTML report generated: {absolute_path}")
        return absolute_path

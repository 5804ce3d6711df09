#!/usr/bin/env python3
import argparse
import asyncio
import json
import os
import sys
import traceback

import yaml
from dotenv import load_dotenv

from textqa_agent.browser import BrowserSessionManager
from textqa_agent.executor import (
    IncrementalExecutor,
    ResultAggregator,
    StepExecutor,
    TestFileMonitor,
    TextTestRunner,
)
from textqa_agent.scenario import ScenarioParser
from textqa_agent.translator import Translator, check_rules_files
from textqa_agent.utils.config import get_section, resolve_path
from textqa_agent.utils.get_log import GetLog


def find_config_file(args_config=None):
    """Find the core configuration file."""
    # 1. Command line arguments have highest priority
    if args_config:
        if os.path.isfile(args_config):
            print(f"✅ Using specified config file: {args_config}")
            return args_config
        else:
            raise FileNotFoundError(f"❌ Specified config file not found: {args_config}")

    # 2. Search default locations by priority
    current_dir = os.getcwd()
    default_paths = [
        os.path.join(current_dir, os.getenv("TEXTQA_CONFIG_DIR", "config"), "core.yaml"),
        os.path.join(current_dir, "core.yaml"),
    ]

    for path in default_paths:
        if os.path.isfile(path):
            print(f"✅ Auto-discovered config file: {path}")
            return path

    print("❌ Config file not found, please check these locations:")
    for path in default_paths:
        print(f"   - {path}")
    raise FileNotFoundError("Config file does not exist")


def load_yaml(path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except Exception as e:
        print(f"[ERROR] Failed to read YAML: {e}", file=sys.stderr)
        sys.exit(1)


def load_environment():
    """Load .env first, then test credentials, which override it."""
    load_dotenv(os.path.join(os.getcwd(), ".env"))
    load_dotenv(os.path.join(os.getcwd(), "test-data", "credentials.env"), override=True)


def build_llm_config(cfg):
    """Environment variables take priority over the config file."""
    llm_cfg_raw = cfg.get("llm_config", {}) or {}

    api_key = os.getenv("OPENAI_API_KEY") or llm_cfg_raw.get("api_key", "")
    base_url = os.getenv("OPENAI_BASE_URL") or llm_cfg_raw.get("base_url", "")
    llm_config = {
        "api": "openai",
        "model": llm_cfg_raw.get("model", "gpt-4o-mini"),
        "api_key": api_key,
        "base_url": base_url or None,
        "temperature": llm_cfg_raw.get("temperature", 0.1),
    }
    if llm_cfg_raw.get("top_p") is not None:
        llm_config["top_p"] = llm_cfg_raw["top_p"]
    if not api_key:
        print("⚠️  LLM API key not configured (OPENAI_API_KEY or llm_config.api_key); act/extract steps will fail")
    return llm_config


class Workspace:
    """Paths and collaborators derived from the core configuration."""

    def __init__(self, cfg, config_path):
        self.cfg = cfg
        self.config_dir = os.path.dirname(os.path.abspath(config_path))
        root = os.getcwd()
        self.core_path = os.path.abspath(config_path)
        self.rules_path = resolve_path(
            get_section(cfg, "translation", "rules_path", default=os.path.join(self.config_dir, "translation-rules.yaml")),
            root,
        )
        self.scenarios_dir = resolve_path(get_section(cfg, "scenarios", "dir", default="scenarios"), root)
        self.cache_dir = resolve_path(get_section(cfg, "cache", "dir", default="cache"), root)
        self.change_cache_file = resolve_path(
            get_section(cfg, "cache", "change_cache_file", default=".textqa-cache.json"), root
        )
        self.report_dir = get_section(cfg, "report", "dir", default="reports")

    def translator(self):
        return Translator(rules_path=self.rules_path, core_path=self.core_path)

    def incremental(self):
        return IncrementalExecutor(scenarios_dir=self.scenarios_dir, cache_file=self.change_cache_file)

    def scenario_files(self, names=None):
        if not names:
            return self.incremental().list_scenario_files()
        files = []
        for name in names:
            path = name if os.path.isfile(name) else os.path.join(self.scenarios_dir, name)
            if not path.endswith(".txt") and not os.path.isfile(path):
                path += ".txt"
            files.append(os.path.abspath(path))
        return files


async def run_scenarios(workspace, files, case_name=None):
    session_manager = BrowserSessionManager(
        browser_config=workspace.cfg.get("browser_config"),
        llm_config=build_llm_config(workspace.cfg),
        cache_base_dir=workspace.cache_dir,
    )
    step_executor = StepExecutor(translator=workspace.translator(), session_provider=session_manager)
    runner = TextTestRunner(step_executor=step_executor, parser=ScenarioParser(), cache_dir=workspace.cache_dir)
    file_results = {}
    completed = []

    try:
        for file_path in files:
            print(f"📄 Running scenario: {file_path}")
            if case_name:
                test_cases = [tc for tc in runner.parse_text_scenario(file_path) if tc.name == case_name]
                if not test_cases:
                    continue
                file_results[file_path] = await runner.run_test_cases(test_cases)
            else:
                file_results[file_path] = await runner.run_file(file_path)
            completed.append(file_path)
    except asyncio.CancelledError:
        runner.cancel()
        raise
    finally:
        await session_manager.close_all_sessions()

    aggregator = ResultAggregator()
    summary = aggregator.aggregate_results(file_results, step_executor.execution_history)
    report_dir = os.path.join(workspace.report_dir, f"test_{os.getenv('TEXTQA_TIMESTAMP', 'latest')}")
    json_path = aggregator.generate_json_report(summary, report_dir)
    html_path = aggregator.generate_html_report(summary, report_dir)

    stats = summary["statistics"]
    print(f"🔢 Total cases: {stats['total_cases']}")
    print(f"✅ Passed: {stats['passed_cases']}")
    print(f"❌ Failed: {stats['failed_cases']}")
    print(f"JSON report path: {json_path}")
    print(f"HTML report path: {html_path}")
    return completed, stats["failed_cases"] == 0


def cmd_run(workspace, args):
    files = workspace.scenario_files(args.files)
    if not files:
        print(f"⚠️  No scenario files found in {workspace.scenarios_dir}")
        return 1
    completed, ok = asyncio.run(run_scenarios(workspace, files, case_name=args.case))
    workspace.incremental().mark_run(completed)
    return 0 if ok else 1


def cmd_changed(workspace, args):
    incremental = workspace.incremental()
    changes = incremental.get_changed_tests()
    if not changes:
        print("✅ No scenario changes since the last run")
        return 0
    for change in changes:
        print(f"[*] {change.file}")
    completed, ok = asyncio.run(run_scenarios(workspace, [c.file for c in changes]))
    incremental.mark_run(completed)
    return 0 if ok else 1


def cmd_watch(workspace, args):
    incremental = workspace.incremental()
    monitor = TestFileMonitor(incremental, debounce_delay=args.debounce, poll_interval=args.interval)

    async def on_change(changes):
        completed, _ = await run_scenarios(workspace, [c.file for c in changes])
        incremental.mark_run(completed)

    try:
        asyncio.run(monitor.watch_test_files(on_change))
    except KeyboardInterrupt:
        print("\nbye")
    return 0


def cmd_translate(workspace, args):
    translator = workspace.translator()
    text = " ".join(args.text)
    print(f"Rules loaded: {len(translator.rules)}")
    for candidate in translator.candidates(text):
        print(f"Candidate: [{candidate.rule.name}] pattern: {candidate.pattern}")
    translation = translator.translate(text)
    print(json.dumps(translation.model_dump(mode="json"), indent=2, ensure_ascii=False))
    return 0


def cmd_config_view(workspace, args):
    for path in (workspace.core_path, workspace.rules_path):
        if os.path.isfile(path):
            with open(path, "r", encoding="utf-8") as f:
                print(f"\n# {path}\n{f.read()}")
        else:
            print(f"Missing {path}")
    return 0


def cmd_config_validate(workspace, args):
    errors = check_rules_files(workspace.rules_path, workspace.core_path)
    if errors:
        print("❌ Configuration problems:\n - " + "\n - ".join(errors))
        return 1
    print("✅ Configuration is valid")
    return 0


def cmd_cache(workspace, args):
    manager = BrowserSessionManager(cache_base_dir=workspace.cache_dir)
    if args.cache_command == "clear":
        if args.workflow:
            manager.clear_cache(args.workflow)
        else:
            manager.clear_all_cache()
    else:
        print(json.dumps(manager.get_cache_stats(), indent=2, ensure_ascii=False))
    return 0


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="TextQA Agent: run plain-text browser test scenarios")
    parser.add_argument("--config", "-c", help="Core YAML configuration file (default: config/core.yaml)")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run all scenarios, or the given scenario files")
    run_parser.add_argument("files", nargs="*", help="Scenario file names or paths")
    run_parser.add_argument("--case", help="Only run the test case with this exact name")
    run_parser.set_defaults(func=cmd_run)

    changed_parser = subparsers.add_parser("changed", help="Run only scenarios changed since the last run")
    changed_parser.set_defaults(func=cmd_changed)

    watch_parser = subparsers.add_parser("watch", help="Re-run scenarios whenever they change")
    watch_parser.add_argument("--interval", type=float, default=1.0, help="Polling interval in seconds")
    watch_parser.add_argument("--debounce", type=float, default=0.5, help="Debounce delay in seconds")
    watch_parser.set_defaults(func=cmd_watch)

    translate_parser = subparsers.add_parser("translate", help="Preview how a step line is translated")
    translate_parser.add_argument("text", nargs="+", help="Step text")
    translate_parser.set_defaults(func=cmd_translate)

    config_parser = subparsers.add_parser("config", help="Inspect configuration")
    config_sub = config_parser.add_subparsers(dest="config_command", required=True)
    config_sub.add_parser("view", help="Print configuration files").set_defaults(func=cmd_config_view)
    config_sub.add_parser("validate", help="Validate configuration files").set_defaults(func=cmd_config_validate)

    cache_parser = subparsers.add_parser("cache", help="Inspect or clear per-workflow caches")
    cache_parser.add_argument("cache_command", choices=["stats", "clear"])
    cache_parser.add_argument("workflow", nargs="?", help="Workflow to clear (default: all)")
    cache_parser.set_defaults(func=cmd_cache)

    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    if not getattr(args, "func", None):
        args = parse_args((["--config", args.config] if args.config else []) + ["run"])

    load_environment()
    try:
        config_path = find_config_file(args.config)
    except FileNotFoundError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)
    cfg = load_yaml(config_path)
    GetLog.get_log(level=get_section(cfg, "log", "level", default="info"))

    try:
        sys.exit(args.func(Workspace(cfg, config_path), args))
    except Exception:
        print("Execution failed, stack trace:", file=sys.stderr)
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()

import hashlib
import json
import logging
import os
from typing import Dict, Iterable, List, Optional

from textqa_agent.data import FileChange

DEFAULT_SCENARIOS_DIR = "scenarios"
DEFAULT_CACHE_FILE = ".textqa-cache.json"
SCENARIO_SUFFIX = ".txt"


class IncrementalExecutor:
    """Tracks scenario file content hashes to find what changed since the
    last run.

    The cache is a JSON document ``{"files": {<absolute path>: <sha256>}}``.
    A missing or corrupt cache reads as empty, so every file counts as
    changed.
    """

    def __init__(self, scenarios_dir: Optional[str] = None, cache_file: Optional[str] = None):
        self.scenarios_dir = os.path.abspath(scenarios_dir or DEFAULT_SCENARIOS_DIR)
        self.cache_file = os.path.abspath(cache_file or DEFAULT_CACHE_FILE)
        self.cache: Dict[str, Dict[str, str]] = self.load_cache()

    def load_cache(self) -> Dict[str, Dict[str, str]]:
        if not os.path.isfile(self.cache_file):
            return {"files": {}}
        try:
            with open(self.cache_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logging.warning(f"Change cache {self.cache_file} is unreadable, starting empty: {e}")
            return {"files": {}}
        files = data.get("files") if isinstance(data, dict) else None
        if not isinstance(files, dict):
            logging.warning(f"Change cache {self.cache_file} has no 'files' mapping, starting empty")
            return {"files": {}}
        return {"files": {k: v for k, v in files.items() if isinstance(k, str) and isinstance(v, str)}}

    def save_cache(self):
        directory = os.path.dirname(self.cache_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.cache_file}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self.cache, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.cache_file)

    @staticmethod
    def calculate_file_hash(file_path: str) -> str:
        digest = hashlib.sha256()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(65536), b""):
                digest.update(chunk)
        return digest.hexdigest()

    def list_scenario_files(self) -> List[str]:
        try:
            names = sorted(os.listdir(self.scenarios_dir))
        except OSError:
            return []
        return [
            os.path.join(self.scenarios_dir, name)
            for name in names
            if name.endswith(SCENARIO_SUFFIX) and os.path.isfile(os.path.join(self.scenarios_dir, name))
        ]

    def get_changed_tests(self) -> List[FileChange]:
        known = self.cache["files"]
        changes = []
        for file_path in self.list_scenario_files():
            if known.get(file_path) != self.calculate_file_hash(file_path):
                changes.append(FileChange(file=file_path))
        return changes

    def mark_run(self, files: Iterable[str]):
        for file_path in files:
            file_path = os.path.abspath(file_path)
            try:
                self.cache["files"][file_path] = self.calculate_file_hash(file_path)
            except FileNotFoundError:
                logging.warning(f"Scenario file disappeared before it could be marked as run: {file_path}")
                self.cache["files"].pop(file_path, None)
        self.save_cache()

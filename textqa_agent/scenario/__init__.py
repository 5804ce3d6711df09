from .parser import ParserState, ScenarioParser, determine_workflow, parse_scenario, split_inline_comment

__all__ = ["ParserState", "ScenarioParser", "determine_workflow", "parse_scenario", "split_inline_comment"]

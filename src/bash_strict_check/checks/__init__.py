from bash_strict_check.checks.engine import DEFAULT_RULES, EngineError, RuleEngine, build_engine

__all__ = ["DEFAULT_RULES", "EngineError", "RuleEngine", "build_engine"]

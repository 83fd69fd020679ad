from bash_strict_check.models import Finding, Report, Rule, Script

__version__ = "0.1.0"

__all__ = ["Finding", "Report", "Rule", "Script", "__version__"]

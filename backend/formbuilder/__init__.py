"""Form definition and conditional logic engine for survey/assessment templates."""

__version__ = "1.0.0"

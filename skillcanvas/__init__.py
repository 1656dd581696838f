"""SkillCanvas - an interactive node-graph editor with a pure world-state core."""

__version__ = "1.0.0"

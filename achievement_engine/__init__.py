"""Achievement engine: rule evaluation and awarding over user activity history"""

__version__ = "0.1.0"

"""Mail and calendar access across Gmail and Microsoft Graph accounts."""

__version__ = "0.1.0"

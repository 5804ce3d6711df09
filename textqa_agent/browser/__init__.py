from .session import AutomationSession, BrowserAutomationSession, BrowserSession, BrowserSessionManager

__all__ = ["AutomationSession", "BrowserAutomationSession", "BrowserSession", "BrowserSessionManager"]

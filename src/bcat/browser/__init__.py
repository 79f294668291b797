"""Browser launching for bcat.

Public API:
    Browser -- resolves a browser by name or command and opens URLs
    BrowserDescriptor -- name plus launch command
    COMMANDS -- read-only table of known browsers for this platform
"""

from bcat.browser.launcher import COMMANDS, Browser, BrowserDescriptor, lookup_command

__all__ = ["Browser", "BrowserDescriptor", "COMMANDS", "lookup_command"]

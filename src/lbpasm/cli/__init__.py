"""
lbpasm Command-Line Interface
=============================

- **lbpasm**: assembler and listing printer
- **lbpemu**: emulator runner
- **lbpsend**: transfer bridge server and client

Each tool is a Click application.
"""

__all__ = ["lbpasm", "lbpemu", "lbpsend"]

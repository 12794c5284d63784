from __future__ import annotations

import logging

import pytest

SAMPLE_REPORT = """=== PROJECT OVERVIEW ===
- A widget factory for the command line
- Targets platform engineers
=== ARCHITECTURE SUMMARY ===
- Layered CLI over a small service core
=== COMPONENT BREAKDOWN ===
- Name: cli | Responsibility: argument parsing | Key Logic: dispatch
- Name: core | Responsibility: widget assembly | Key Logic: builders
=== DATA & CONTROL FLOW ===
- main() parses flags and calls core.build()
=== CODE QUALITY & RISKS ===
- No input validation on widget names
=== IMPROVEMENT SUGGESTIONS ===
- Add schema validation
=== META ANALYSIS ===
- Code Quality Score: 7
- Complexity: Advanced
- Maintainability: High
=== ARCHITECTURE DIAGRAM ===
  [cli] ---> [core]
               |
            [store]
"""


@pytest.fixture
def sample_report_text() -> str:
    """A complete delimited-sections response as a backend would stream it."""
    return SAMPLE_REPORT


@pytest.fixture(autouse=True)
def _reset_reposense_logging():
    """Undo CLI logging setup so caplog sees records from every test."""
    yield
    logger = logging.getLogger("reposense")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)

"""
Diagram Backend - diagram state management, REST API and command-line tool
built on top of `diagram_core`.
"""

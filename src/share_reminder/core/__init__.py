"""
Core wiring: ports (Protocols), AppState and the share flow.
"""

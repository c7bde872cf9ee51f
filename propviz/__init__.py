"""PropViz - property measurement and exterior visualization API"""

__version__ = "1.0.0"

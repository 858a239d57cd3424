"""
Operator HTTP service exposing the feed controller.
"""

"""
Strata Framework Layer

Configuration stores and the command-line interface built on the
infrastructure layer.
"""

"""
Configuration for the OpenPBS installer.

This package holds the static constants, the pydantic settings models and the
loader that merges defaults, environment, YAML and command-line input.
"""

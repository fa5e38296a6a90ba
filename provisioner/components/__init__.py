"""
Provisioning steps.

Each subpackage holds one step, registered with the StepRegistry on import.
"""

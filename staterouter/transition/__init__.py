"""
Transition package: hook registration, hook invocation, the rejection
taxonomy and the Transition lifecycle itself.
"""

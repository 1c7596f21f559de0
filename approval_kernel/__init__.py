"""
Approval Kernel

A sequential multi-step approval workflow engine with:
- Conditional workflow resolution per approvable item
- Ordered approval steps with optional fixed approvers
- Append-only state-change events
- Pluggable status propagation to approvable items
"""

__version__ = "0.1.0"

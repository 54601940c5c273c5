"""Service layer — pipeline orchestration returning ExecutionResult / ServiceResult.

Services may import from domain and runtime layers.
They must never import from commands or output.
"""

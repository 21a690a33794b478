"""Operation lifecycle: Operation, Executor and the built-in actions."""

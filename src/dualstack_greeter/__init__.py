"""Single-socket dual-stack TCP greeter."""

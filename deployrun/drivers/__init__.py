"""Local drivers implementing the kernel ports."""

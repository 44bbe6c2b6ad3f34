"""Employment history — initial hire, termination and rehire."""

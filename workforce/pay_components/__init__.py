"""Pay components and their employee assignments."""

"""Tasks module for aquarium maintenance: persistence, recurrence and services."""

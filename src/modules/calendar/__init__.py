"""Calendar module: month grid, filters, task cache and optimistic mutations."""

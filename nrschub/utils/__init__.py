"""Concurrency helpers: locks, a bounded cache, once-cells, append lists, polling waits and events."""
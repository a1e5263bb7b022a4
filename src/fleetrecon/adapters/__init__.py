"""Infrastructure adapters: persistence, HTTP and source inventories."""

"""File-backed persistence: locked atomic JSON, manifest store, caches."""

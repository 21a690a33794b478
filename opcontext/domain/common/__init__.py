"""Cross-cutting domain primitives: errors and the transactional port."""

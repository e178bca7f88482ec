"""Pure layout algorithms operating on flat grid-item lists."""

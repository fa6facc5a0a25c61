"""Forum (Reddit) client, post formatting and the publish state machine."""

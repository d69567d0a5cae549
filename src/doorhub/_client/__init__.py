"""Internal helpers for :class:`doorhub.client.DoorHubClient`."""

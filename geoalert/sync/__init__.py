"""Alert and zone state synchronisation.

- alert_store: Snapshot/push merge and optimistic acknowledge/resolve
- zone_store: Zone snapshot and pushed status changes
- event_channel: Authenticated push connection with typed dispatch
- transport: Socket primitives behind the push connection
- optimistic: Generic apply/confirm/rollback helper
- notification_gate: One notification per failure episode
"""

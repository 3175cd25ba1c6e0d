"""Services of the reminder batch: storage, locks, dispatch, engine, scheduler."""

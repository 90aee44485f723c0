class AlertNotFoundError(LookupError):
    """Alert does not exist or belongs to another user."""

    def __init__(self, alert_id: int, user_id: int) -> None:
        super().__init__(f"Alert {alert_id} not found for user {user_id}")
        self.alert_id = alert_id
        self.user_id = user_id


class DeviceNotPairedError(LookupError):
    """Reading submitted from a device that is not paired to the submitting user."""

    def __init__(self, device_id: str, user_id: int) -> None:
        super().__init__(f"Device {device_id} is not paired with user {user_id}")
        self.device_id = device_id
        self.user_id = user_id


class DeviceInUseError(ValueError):
    """Device id is already paired to a different user."""

    def __init__(self, device_id: str) -> None:
        super().__init__(f"Device {device_id} is already in use by another user")
        self.device_id = device_id

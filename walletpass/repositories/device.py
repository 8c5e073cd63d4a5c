from dataclasses import dataclass


@dataclass
class DeviceRegistration:
    device_library_id: str
    pass_type_id: str
    serial_number: str
    push_token: str


class DeviceRepository:
    """Repository for Apple Wallet device registrations (PassKit web service)."""

    def __init__(self):
        self._registrations: dict[tuple[str, str, str], DeviceRegistration] = {}

    def register(
        self,
        device_library_id: str,
        pass_type_id: str,
        serial_number: str,
        push_token: str,
    ) -> bool:
        """Register a device for a pass. Returns True when the registration is new."""
        key = (device_library_id, pass_type_id, serial_number)
        created = key not in self._registrations
        self._registrations[key] = DeviceRegistration(
            device_library_id=device_library_id,
            pass_type_id=pass_type_id,
            serial_number=serial_number,
            push_token=push_token,
        )
        return created

    def unregister(self, device_library_id: str, pass_type_id: str, serial_number: str) -> bool:
        return self._registrations.pop((device_library_id, pass_type_id, serial_number), None) is not None

    def get_serial_numbers_for_device(self, device_library_id: str, pass_type_id: str) -> list[str]:
        """Get all serial numbers registered to an Apple device for a pass type."""
        return [
            r.serial_number
            for r in self._registrations.values()
            if r.device_library_id == device_library_id and r.pass_type_id == pass_type_id
        ]

    def get_push_tokens(self, serial_number: str) -> list[str]:
        """Get all Apple push tokens for a pass."""
        return sorted({
            r.push_token for r in self._registrations.values()
            if r.serial_number == serial_number and r.push_token
        })

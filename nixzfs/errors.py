#!/usr/bin/env python3
# Errors Module
# Failure types raised by the provisioning steps

class ProvisioningError(Exception):
    """Base class for every fatal installer failure"""


class SelectionAborted(ProvisioningError):
    """The operator declined a prompt or a confirmation"""


class NoDeviceSelected(SelectionAborted):
    """No installation disk was chosen"""


class DeviceNotReady(ProvisioningError):
    """A device node did not appear before the settle timeout"""


class PartitionCreationFailed(ProvisioningError):
    pass


class PoolCreationFailed(ProvisioningError):
    pass


class DatasetCreationFailed(ProvisioningError):
    pass


class MountFailed(ProvisioningError):
    pass


class ConfigGenerationFailed(ProvisioningError):
    pass

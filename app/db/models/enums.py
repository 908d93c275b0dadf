from enum import Enum

class SlotStatus(str, Enum):
    FREE = "FREE"
    BUSY = "BUSY"

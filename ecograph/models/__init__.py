from ecograph.models.candidate import Candidate, format_identity
from ecograph.models.record import ModuleRecord, decode_record, encode_record
from ecograph.models.store import KeyValueEntry, ListItem, SetMember

__all__ = [
    "Candidate",
    "KeyValueEntry",
    "ListItem",
    "ModuleRecord",
    "SetMember",
    "decode_record",
    "encode_record",
    "format_identity",
]

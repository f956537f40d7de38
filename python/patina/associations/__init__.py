from patina.associations.many_to_one import BelongsTo, ManyToOneProxy
from patina.associations.relationship import RelationshipDescriptor

__all__ = ["BelongsTo", "ManyToOneProxy", "RelationshipDescriptor"]

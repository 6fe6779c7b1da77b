from collections import defaultdict
from typing import Dict, List, Optional

from transit_copier.gtfs.causes import InvalidReferenceError
from transit_copier.gtfs.entities import Entity


class EntityMap:
    """
    run scoped table of (filename, source key) -> destination key

    every foreign key written to the destination is resolved through this
    table. a mapping, once set, never changes for the rest of the run.
    """

    def __init__(self) -> None:
        self._keys: Dict[str, Dict[str, str]] = defaultdict(dict)

    def set(self, filename: str, source_key: str, dest_key: str) -> None:
        """record a mapping, the first mapping for a key wins"""
        self._keys[filename].setdefault(source_key, dest_key)

    def get(self, filename: str, source_key: str) -> Optional[str]:
        """destination key for a source key, None if it was never copied"""
        return self._keys.get(filename, {}).get(source_key)

    def set_entity(self, entity: Entity, dest_key: str) -> None:
        """record the destination key of a copied entity"""
        self.set(entity.filename, entity.entity_id(), dest_key)

    def get_entity(self, entity: Entity) -> Optional[str]:
        """destination key of an entity, None if it was never copied"""
        return self.get(entity.filename, entity.entity_id())

    def resolve(self, field: str, filename: str, value: str, optional: bool = False) -> str:
        """
        resolve a foreign key value to its destination key

        :param field: name of the foreign key field, used in the raised error
        :param filename: GTFS file the key references (ie. stops.txt)
        :param value: source key
        :param optional: if True, an empty value resolves to an empty value

        :return destination key
        """
        if optional and not value:
            return ""

        dest_key = self.get(filename, value)
        if dest_key is None:
            raise InvalidReferenceError(field, value)

        return dest_key

    def keys(self, filename: str) -> List[str]:
        """source keys recorded for a file"""
        return list(self._keys.get(filename, {}).keys())

    def __contains__(self, filename: str) -> bool:
        return filename in self._keys

    def __len__(self) -> int:
        return sum(len(keys) for keys in self._keys.values())

    def register(self, entity: Entity, source_key: str, dest_key: str) -> None:
        """
        record a written entity: its destination key, if the entity is keyed,
        and its group key, ie. the zone_id of a stop
        """
        if entity.keyed:
            self.set(entity.filename, source_key, dest_key)
        group = entity.group_key()
        if group is not None:
            group_name, group_value = group
            self.set(f"{entity.filename}:{group_name}", group_value, group_value)

"""Contact identity resolution — groups events that share an email, phone, or name."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

from bizzybot.services.events import EventRecord, normalize_phone

logger = logging.getLogger(__name__)

CONTACT_ID_PREFIX = "ct_"


class _UnionFind:
    def __init__(self):
        self._parent: Dict[Hashable, Hashable] = {}

    def find(self, node: Hashable) -> Hashable:
        parent = self._parent.setdefault(node, node)
        if parent != node:
            parent = self._parent[node] = self.find(parent)
        return parent

    def union(self, a: Hashable, b: Hashable) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a != root_b:
            self._parent[root_b] = root_a


def identity_keys(event: EventRecord) -> List[Tuple[str, str]]:
    """Identifying attributes of an event, normalized for matching."""
    keys = []
    if event.email:
        keys.append(("email", event.email.lower()))
    phone = normalize_phone(event.phone)
    if phone:
        keys.append(("phone", phone))
    if event.name:
        keys.append(("name", " ".join(event.name.lower().split())))
    return keys


@dataclass
class ResolvedContact:
    """All events of one inferred person, oldest first."""

    contact_id: str
    events: List[EventRecord] = field(default_factory=list)

    def _latest(self, attr: str) -> Optional[str]:
        for event in reversed(self.events):
            value = getattr(event, attr)
            if value:
                return value
        return None

    @property
    def name(self) -> Optional[str]:
        return self._latest("name")

    @property
    def email(self) -> Optional[str]:
        return self._latest("email")

    @property
    def phone(self) -> Optional[str]:
        return self._latest("phone")

    @property
    def company(self) -> Optional[str]:
        return self._latest("company")

    @property
    def location(self) -> Optional[str]:
        return self._latest("location")

    @property
    def emails(self) -> set:
        return {e.email.lower() for e in self.events if e.email}

    @property
    def phones(self) -> set:
        return {p for p in (normalize_phone(e.phone) for e in self.events) if p}

    @property
    def names(self) -> set:
        return {" ".join(e.name.lower().split()) for e in self.events if e.name}

    @property
    def lead_ids(self) -> List[str]:
        """Current contact id first, then the ids this contact held before any merge."""
        former = (f"{CONTACT_ID_PREFIX}{e.id}" for e in self.events)
        return [self.contact_id] + [i for i in former if i != self.contact_id]

    @property
    def channels(self) -> List[str]:
        """Distinct channels in first-seen order."""
        seen: List[str] = []
        for event in self.events:
            if event.channel not in seen:
                seen.append(event.channel)
        return seen

    @property
    def primary_channel(self) -> str:
        return self.events[0].channel if self.events else "unknown"

    @property
    def first_interaction_at(self) -> Optional[datetime]:
        return self.events[0].created_at if self.events else None

    @property
    def last_interaction_at(self) -> Optional[datetime]:
        return self.events[-1].created_at if self.events else None

    def event_counts(self) -> Counter:
        return Counter(e.event_type for e in self.events)

    def matches(self, identifier: str) -> bool:
        """True if identifier is one of this contact's ids, emails, phones or names."""
        ident = (identifier or "").strip()
        if not ident:
            return False
        if ident == self.contact_id or (ident.startswith(CONTACT_ID_PREFIX) and ident in self.lead_ids):
            return True
        lowered = " ".join(ident.lower().split())
        if lowered in self.emails or lowered in self.names:
            return True
        phone = normalize_phone(ident)
        return bool(phone) and phone in self.phones


def resolve_contacts(events: Iterable[EventRecord]) -> List[ResolvedContact]:
    """
    Group events into contacts with union-find over shared identifying keys.

    Two events belong to the same contact when they are connected through any
    chain of shared email, phone or name. Events carrying none of those stay
    alone. The contact id is derived from the earliest event in the group, so
    it is stable as long as groups do not merge. After a merge the ids the
    parts held before are still listed in `ResolvedContact.lead_ids`.
    """
    ordered = sorted(events, key=lambda e: (e.created_at, e.id))
    uf = _UnionFind()
    for idx, event in enumerate(ordered):
        node = ("event", idx)
        uf.find(node)
        for key in identity_keys(event):
            uf.union(node, key)

    groups: Dict[Hashable, List[EventRecord]] = {}
    for idx, event in enumerate(ordered):
        groups.setdefault(uf.find(("event", idx)), []).append(event)

    contacts = [
        ResolvedContact(contact_id=f"{CONTACT_ID_PREFIX}{members[0].id}", events=members)
        for members in groups.values()
    ]
    contacts.sort(key=lambda c: (c.events[0].created_at, c.contact_id))
    return contacts


class ContactIndexCache:
    """
    Per-customer cache of resolved contacts.

    Entries are keyed by the event store fingerprint, so any appended event
    invalidates the customer's entry on the next read.
    """

    def __init__(self, max_customers: int = 1000):
        self.max_customers = max_customers
        self._entries: Dict[str, Tuple[Tuple[int, Optional[str]], List[ResolvedContact]]] = {}

    def get(self, customer_id: str, fingerprint: Tuple[int, Optional[str]]) -> Optional[List[ResolvedContact]]:
        entry = self._entries.get(customer_id)
        if entry and entry[0] == fingerprint:
            return entry[1]
        return None

    def put(self, customer_id: str, fingerprint: Tuple[int, Optional[str]], contacts: List[ResolvedContact]) -> None:
        if customer_id not in self._entries and len(self._entries) >= self.max_customers:
            # Evict the oldest inserted entry
            self._entries.pop(next(iter(self._entries)))
        self._entries[customer_id] = (fingerprint, contacts)

    def invalidate(self, customer_id: Optional[str] = None) -> None:
        if customer_id is None:
            self._entries.clear()
        else:
            self._entries.pop(customer_id, None)

    def __len__(self) -> int:
        return len(self._entries)


async def load_contacts(store, customer_id: str, cache: Optional[ContactIndexCache] = None) -> List[ResolvedContact]:
    """Resolve all contacts of a customer, reading through the cache when one is given."""
    if cache is not None:
        fingerprint = await store.fingerprint(customer_id)
        cached = cache.get(customer_id, fingerprint)
        if cached is not None:
            return cached
        contacts = resolve_contacts(await store.list_for_customer(customer_id))
        cache.put(customer_id, fingerprint, contacts)
        logger.debug(f"Resolved {len(contacts)} contacts for customer={customer_id}")
        return contacts
    return resolve_contacts(await store.list_for_customer(customer_id))

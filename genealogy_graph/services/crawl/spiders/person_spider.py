from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple, Union

from selectolax.parser import HTMLParser, Node

from ..base import ANCHOR_RE, PERSON_LINK_RE, DiscoveredReference, ParsedPerson, anchor_to_id
from ..names import clean_date_string, split_name
from genealogy_graph.models.person import Person

PLACE_RE = re.compile(r"\bat\s+([^,]+(?:,\s*[A-Z][a-z\s]+)?)\s*[,.]?", re.I)

EVENT_FIELDS = {
    "birth": ("birth", "birth_place"),
    "death": ("death", "death_place"),
    "burial": ("burial", "burial_place"),
}


def _classes(node: Node) -> List[str]:
    return ((node.attributes or {}).get("class") or "").split()


def _text(node: Optional[Node]) -> str:
    return node.text(deep=True) if node is not None else ""


def _extract_place(text: str) -> Optional[str]:
    m = PLACE_RE.search(text or "")
    if not m or not m.group(1):
        return None
    place = re.sub(r"[,.;]+$", "", m.group(1).strip())
    return place or None


def extract_person_links(node: Optional[Node]) -> List[Tuple[str, str]]:
    """Return (page, person id) for every record link under node, in document order."""
    links: List[Tuple[str, str]] = []
    if node is None:
        return links
    for a in node.css("a[href]"):
        href = (a.attributes or {}).get("href") or ""
        m = PERSON_LINK_RE.search(href)
        if m:
            links.append((m.group(1), m.group(2)))
    return links


class PersonSpider:
    """Parser for Second Site person pages.

    A page holds many records, each a `div.itp` whose id is the record anchor
    (i<N>). Inside a record:
      - h2: display name (citation <sup> markers removed)
      - div.sinfo.sect-ls: summary line, starting with the gender
      - table.grid: facts (Birth / Death / Burial / Marriage rows; date in the
        second cell, narrative "... at <place>." in the third)
      - table.grid.ss-parents: Father / Mother rows
      - table.grid.ss-family: one per marriage; spouse link in the header row
        (marked by h3.family), then Children rows

    Missing or oddly shaped pieces are skipped; only a missing anchor makes a
    parse return None.
    """

    name = "second_site_person"

    def __init__(
        self,
        *,
        record_sel: str = "div.itp",
        name_sel: str = "h2",
        info_sel: str = "div.sinfo.sect-ls",
        table_sel: str = "table.grid",
        parents_class: str = "ss-parents",
        family_class: str = "ss-family",
        family_header_sel: str = "h3.family",
    ) -> None:
        self.record_sel = record_sel
        self.name_sel = name_sel
        self.info_sel = info_sel
        self.table_sel = table_sel
        self.parents_class = parents_class
        self.family_class = family_class
        self.family_header_sel = family_header_sel

    # --- Public API ---
    def parse_person(self, html: Union[str, HTMLParser], anchor: str, page: Optional[str] = None) -> Optional[ParsedPerson]:
        """Parse the record identified by anchor; None when the anchor is absent."""
        if not ANCHOR_RE.match(anchor or ""):
            return None
        doc = html if isinstance(html, HTMLParser) else HTMLParser(html or "")
        record = doc.css_first(f'{self.record_sel}[id="{anchor}"]')
        if record is None:
            return None
        return self._parse_record(record, anchor, page)

    def parse_page(self, html: str, page: Optional[str] = None) -> List[ParsedPerson]:
        """Parse every record on a page, building the DOM once."""
        doc = HTMLParser(html or "")
        out: List[ParsedPerson] = []
        for record in doc.css(self.record_sel):
            anchor = (record.attributes or {}).get("id") or ""
            if not ANCHOR_RE.match(anchor):
                continue
            out.append(self._parse_record(record, anchor, page))
        return out

    # --- Internals ---
    def _parse_record(self, record: Node, anchor: str, page: Optional[str]) -> ParsedPerson:
        discovered: List[DiscoveredReference] = []
        fields: Dict[str, object] = {"id": anchor_to_id(anchor), "page": page}

        name = self._extract_name(record)
        fields["name"] = name
        parts = split_name(name)
        fields["first_name"] = parts.get("firstName")
        fields["middle_name"] = parts.get("middleName")
        fields["last_name"] = parts.get("lastName")
        fields["gender"] = self._extract_gender(record)

        parents_table: Optional[Node] = None
        facts_table: Optional[Node] = None
        family_tables: List[Node] = []
        for table in record.css(self.table_sel):
            classes = _classes(table)
            if self.parents_class in classes:
                parents_table = parents_table or table
            elif self.family_class in classes:
                family_tables.append(table)
            elif facts_table is None:
                facts_table = table

        if parents_table is not None:
            for relation, pid, link_page in self._extract_parents(parents_table):
                if not fields.get(relation):
                    fields[relation] = pid
                discovered.append(DiscoveredReference(page=link_page, anchor=f"i{pid}", relation=relation))

        if facts_table is not None:
            self._extract_events(facts_table, fields)

        spouses: List[str] = []
        children: List[str] = []
        for table in family_tables:
            self._extract_family(table, fields, spouses, children, discovered)

        fields["spouses"] = spouses
        fields["children"] = children
        person = Person(**{k: v for k, v in fields.items() if v is not None and v != ""})
        return ParsedPerson(person=person, discovered=discovered)

    def _extract_name(self, record: Node) -> str:
        heading = record.css_first(self.name_sel)
        if heading is None:
            return ""
        for sup in heading.css("sup"):
            sup.decompose()
        return re.sub(r"\s+", " ", _text(heading)).strip()

    def _extract_gender(self, record: Node) -> Optional[str]:
        info = _text(record.css_first(self.info_sel)).strip().lower()
        if info.startswith("male"):
            return "Male"
        if info.startswith("female"):
            return "Female"
        return None

    def _extract_parents(self, table: Node) -> List[Tuple[str, str, str]]:
        found: List[Tuple[str, str, str]] = []
        for row in table.css("tr"):
            cells = row.css("td")
            if len(cells) < 2:
                continue
            label = _text(cells[0]).lower().strip()
            if "father" in label:
                relation = "father"
            elif "mother" in label:
                relation = "mother"
            else:
                continue
            links = extract_person_links(cells[1])
            if links:
                link_page, pid = links[0]
                found.append((relation, pid, link_page))
        return found

    def _extract_events(self, table: Node, fields: Dict[str, object]) -> None:
        for row in table.css("tr"):
            cells = row.css("td")
            if len(cells) < 2:
                continue
            label = _text(cells[0]).lower().strip()
            date = clean_date_string(_text(cells[1])) or None
            narrative = _text(cells[2]).strip() if len(cells) > 2 else ""
            for prefix, (date_field, place_field) in EVENT_FIELDS.items():
                if label.startswith(prefix):
                    if date:
                        fields[date_field] = date
                    place = _extract_place(narrative)
                    if place:
                        fields[place_field] = place
                    break
            else:
                if label.startswith("marriage") and not fields.get("marriage_date"):
                    fields["marriage_date"] = date

    def _extract_family(
        self,
        table: Node,
        fields: Dict[str, object],
        spouses: List[str],
        children: List[str],
        discovered: List[DiscoveredReference],
    ) -> None:
        first_row = table.css_first("tr")
        if first_row is not None:
            header_cells = first_row.css("td")
            if header_cells and header_cells[0].css_first(self.family_header_sel) is not None:
                spouse_cell = header_cells[1] if len(header_cells) > 1 else None
                for link_page, pid in extract_person_links(spouse_cell):
                    if pid not in spouses:
                        spouses.append(pid)
                    discovered.append(DiscoveredReference(page=link_page, anchor=f"i{pid}", relation="spouse"))

        for row in table.css("tr"):
            cells = row.css("td")
            if len(cells) < 2:
                continue
            label = _text(cells[0]).lower().strip()
            if label.startswith("child"):
                for link_page, pid in extract_person_links(cells[1]):
                    if pid not in children:
                        children.append(pid)
                    discovered.append(DiscoveredReference(page=link_page, anchor=f"i{pid}", relation="child"))
            elif label.startswith("marriage") and not fields.get("marriage_date"):
                fields["marriage_date"] = clean_date_string(_text(cells[1])) or None


_default_spider = PersonSpider()


def parse_person(html: str, anchor: str, page: Optional[str] = None) -> Optional[ParsedPerson]:
    return _default_spider.parse_person(html, anchor, page)


def parse_page(html: str, page: Optional[str] = None) -> List[ParsedPerson]:
    return _default_spider.parse_page(html, page)

"""Notion database property values → plain Python values and HTML tables.

Database entries carry typed property objects ({"type": "select",
"select": {"name": "Done"}}). property_value() flattens one of them to a
JSON-friendly value; rows_to_table() renders a set of entries as the body
of the local record that mirrors the database.
"""

from typing import Any, Dict, Iterable, List, Sequence

from bs4 import BeautifulSoup

from .rich_text import plain_text


def property_value(prop: Dict[str, Any]) -> Any:
    """Flatten one Notion property object.

    Text becomes a string, multi-valued properties become lists, computed
    values (formula, rollup) are unwrapped. Unknown types are returned as-is.
    """
    prop_type = prop.get('type', '')
    data = prop.get(prop_type)

    if prop_type in ('title', 'rich_text'):
        return plain_text(data)
    if prop_type == 'checkbox':
        return bool(data)
    if prop_type in ('number', 'url', 'email', 'phone_number', 'created_time', 'last_edited_time'):
        return data
    if prop_type in ('select', 'status'):
        return (data or {}).get('name')
    if prop_type == 'multi_select':
        return [item['name'] for item in data or [] if 'name' in item]
    if prop_type == 'date':
        if not data or not data.get('start'):
            return None
        if data.get('end'):
            return {'start': data['start'], 'end': data['end']}
        return data['start']
    if prop_type == 'relation':
        return [item['id'] for item in data or [] if 'id' in item]
    if prop_type in ('formula', 'rollup'):
        if not data or 'type' not in data:
            return None
        return data.get(data['type'])
    if prop_type == 'people':
        return [person['name'] for person in data or [] if 'name' in person]
    if prop_type == 'files':
        files = []
        for item in data or []:
            if 'name' not in item:
                continue
            source = item.get('file') or item.get('external') or {}
            files.append({'name': item['name'], 'url': source.get('url', '')})
        return files
    return prop


def normalize_properties(properties: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten every property of a database entry, keyed by property name."""
    return {
        name: property_value(prop)
        for name, prop in (properties or {}).items()
        if isinstance(prop, dict)
    }


def display_value(value: Any) -> str:
    """Short text for a flattened value, as shown in a table cell."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, dict):
        if 'start' in value:
            return f"{value['start']} to {value['end']}" if value.get('end') else str(value['start'])
        if 'name' in value:
            return str(value['name'])
        return ''
    if isinstance(value, list):
        return ', '.join(display_value(item) for item in value)
    return str(value)


def column_order(schema: Dict[str, Any]) -> List[str]:
    """Column names with the title column first, the rest in schema order."""
    names = list((schema or {}).keys())
    titles = [name for name in names if (schema[name] or {}).get('type') == 'title']
    return titles + [name for name in names if name not in titles]


def rows_to_table(columns: Sequence[str], rows: Iterable[Dict[str, Any]]) -> str:
    """Render flattened entries as an HTML table.

    Args:
        columns: Column names, in display order
        rows: Flattened property maps (see normalize_properties)
    """
    soup = BeautifulSoup('', 'html.parser')
    table = soup.new_tag('table', attrs={'class': 'notion-database'})

    head_row = soup.new_tag('tr')
    for name in columns:
        cell = soup.new_tag('th')
        cell.string = name
        head_row.append(cell)
    thead = soup.new_tag('thead')
    thead.append(head_row)
    table.append(thead)

    tbody = soup.new_tag('tbody')
    for row in rows:
        tr = soup.new_tag('tr')
        for name in columns:
            cell = soup.new_tag('td')
            cell.string = display_value(row.get(name))
            tr.append(cell)
        tbody.append(tr)
    table.append(tbody)

    soup.append(table)
    return soup.decode()

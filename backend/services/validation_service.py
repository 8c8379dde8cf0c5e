"""
Centralized Input Validation Service
Handles all input validation with proper error messages
"""
import re
from typing import Dict, Any, List

from utils.validators import Helpers, VALID_STATUSES, VALID_TEAMS


class ValidationService:
    """Centralized validation service for task and announcement payloads"""

    MAX_TASK_TITLE_LENGTH = 100
    MAX_ANNOUNCEMENT_TITLE_LENGTH = 150
    MAX_LINKS = 10
    MAX_MESSAGE_LENGTH = 2000

    URL_PATTERN = re.compile(r"^https?://\S+$")

    @staticmethod
    def validate_task_title(title: str) -> Dict[str, Any]:
        """Validate task title"""
        if not title or not isinstance(title, str) or not title.strip():
            return {'valid': False, 'error': 'Task title is required'}

        title = title.strip()

        if len(title) > ValidationService.MAX_TASK_TITLE_LENGTH:
            return {'valid': False, 'error': f'Task title must be less than {ValidationService.MAX_TASK_TITLE_LENGTH} characters'}

        return {'valid': True, 'value': title}

    @staticmethod
    def validate_due_date(due_date: Any) -> Dict[str, Any]:
        """Due date must be an ISO 8601 timestamp"""
        if not due_date or not isinstance(due_date, str):
            return {'valid': False, 'error': 'A due date is required'}

        parsed = Helpers.parse_timestamp(due_date)
        if not parsed:
            return {'valid': False, 'error': 'Due date must be an ISO 8601 timestamp'}

        return {'valid': True, 'value': parsed}

    @staticmethod
    def validate_id_list(values: Any, field: str) -> Dict[str, Any]:
        if values is None:
            return {'valid': True, 'value': []}
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            return {'valid': False, 'error': f'{field} must be a list of ids'}

        # Keep first occurrence order, drop blanks and repeats
        seen = []
        for value in values:
            value = value.strip()
            if value and value not in seen:
                seen.append(value)
        return {'valid': True, 'value': seen}

    @staticmethod
    def validate_links(links: Any) -> Dict[str, Any]:
        if links is None:
            return {'valid': True, 'value': []}
        if not isinstance(links, list):
            return {'valid': False, 'error': 'links must be a list'}

        cleaned = [str(l).strip() for l in links if l and str(l).strip()]
        if len(cleaned) > ValidationService.MAX_LINKS:
            return {'valid': False, 'error': f'At most {ValidationService.MAX_LINKS} links are allowed'}
        return {'valid': True, 'value': cleaned}

    @staticmethod
    def validate_status(status: str) -> Dict[str, Any]:
        """Validate task status"""
        if not status or not isinstance(status, str):
            return {'valid': False, 'error': 'Status is required'}

        status = status.strip()

        if status not in VALID_STATUSES:
            return {'valid': False, 'error': f'Status must be one of: {", ".join(VALID_STATUSES)}'}

        return {'valid': True, 'value': status}

    @staticmethod
    def validate_url(url: Any) -> Dict[str, Any]:
        if not url or not isinstance(url, str) or not url.strip():
            return {'valid': False, 'error': 'A link is required'}

        url = url.strip()
        if not ValidationService.URL_PATTERN.match(url):
            return {'valid': False, 'error': 'Please enter a valid URL.'}
        return {'valid': True, 'value': url}

    @staticmethod
    def validate_message(message: Any, field: str = 'Comment') -> Dict[str, Any]:
        """Free text for comments and subtask titles"""
        if not isinstance(message, str) or not message.strip():
            return {'valid': False, 'error': f'{field} cannot be empty.'}

        message = message.strip()
        if len(message) > ValidationService.MAX_MESSAGE_LENGTH:
            return {'valid': False, 'error': f'{field} must be less than {ValidationService.MAX_MESSAGE_LENGTH} characters'}
        return {'valid': True, 'value': message}

    @staticmethod
    def validate_task_data(task_data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate complete task data"""
        errors = []
        validated_data = {}

        title_result = ValidationService.validate_task_title(task_data.get('title', ''))
        if not title_result['valid']:
            errors.append(title_result['error'])
        else:
            validated_data['title'] = title_result['value']

        validated_data['description'] = Helpers.sanitize_string(task_data.get('description') or '')

        assignees_result = ValidationService.validate_id_list(task_data.get('assigned_to_ids'), 'assigned_to_ids')
        if not assignees_result['valid']:
            errors.append(assignees_result['error'])
        else:
            validated_data['assigned_to_ids'] = assignees_result['value']

        due_result = ValidationService.validate_due_date(task_data.get('due_date'))
        if not due_result['valid']:
            errors.append(due_result['error'])
        else:
            validated_data['due_date'] = due_result['value']

        links_result = ValidationService.validate_links(task_data.get('links'))
        if not links_result['valid']:
            errors.append(links_result['error'])
        else:
            validated_data['links'] = links_result['value']

        if errors:
            return {'valid': False, 'errors': errors}

        return {'valid': True, 'data': validated_data}

    @staticmethod
    def validate_announcement_data(data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate an announcement, with optional poll and team targeting"""
        errors: List[str] = []
        validated_data: Dict[str, Any] = {}

        title = Helpers.sanitize_string(data.get('title') or '')
        if not title:
            errors.append('Title is required')
        elif len(title) > ValidationService.MAX_ANNOUNCEMENT_TITLE_LENGTH:
            errors.append(f'Title must be less than {ValidationService.MAX_ANNOUNCEMENT_TITLE_LENGTH} characters')
        else:
            validated_data['title'] = title

        content = Helpers.sanitize_string(data.get('content') or '')
        if not content:
            errors.append('Content is required')
        else:
            validated_data['content'] = content

        links_result = ValidationService.validate_links(data.get('links'))
        if not links_result['valid']:
            errors.append(links_result['error'])
        else:
            validated_data['links'] = links_result['value']

        targets_result = ValidationService.validate_id_list(data.get('target_domains'), 'target_domains')
        if not targets_result['valid']:
            errors.append(targets_result['error'])
        else:
            unknown = [t for t in targets_result['value'] if t not in VALID_TEAMS]
            if unknown:
                errors.append(f'Unknown target domains: {", ".join(unknown)}')
            else:
                validated_data['target_domains'] = targets_result['value']

        poll = data.get('poll')
        if poll:
            question = Helpers.sanitize_string((poll or {}).get('question') or '')
            options = [Helpers.sanitize_string(str(o)) for o in (poll or {}).get('options') or []]
            options = [o for o in options if o]
            if not question or not options:
                errors.append('A poll needs a question and at least one option')
            else:
                validated_data['poll'] = {
                    'question': question,
                    'options': [{'id': f'opt-{i}', 'text': text} for i, text in enumerate(options)],
                }

        if errors:
            return {'valid': False, 'errors': errors}

        return {'valid': True, 'data': validated_data}

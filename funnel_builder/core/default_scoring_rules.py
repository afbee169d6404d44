from typing import Any, Dict, List


DEFAULT_SCORING_RULES: List[Dict[str, Any]] = [
    {
        "name": "Fast Reply",
        "description": "Lead answered within ten minutes",
        "rule_type": "response_time",
        "condition_operator": "less_than",
        "condition_value": "10",
        "points": 15,
    },
    {
        "name": "Slow Reply",
        "description": "Lead took more than a day to answer",
        "rule_type": "response_time",
        "condition_operator": "greater_than",
        "condition_value": "1440",
        "points": -10,
    },
    {
        "name": "Detailed Message",
        "description": "Message longer than 200 characters",
        "rule_type": "message_length",
        "condition_operator": "greater_than",
        "condition_value": "200",
        "points": 10,
    },
    {
        "name": "Very Short Message",
        "description": "Message shorter than 20 characters",
        "rule_type": "message_length",
        "condition_operator": "less_than",
        "condition_value": "20",
        "points": -5,
    },
    {
        "name": "LinkedIn Source",
        "description": "Lead arrived from LinkedIn",
        "rule_type": "source",
        "condition_operator": "contains",
        "condition_value": "linkedin",
        "points": 10,
    },
    {
        "name": "Referral Source",
        "description": "Lead was referred by a customer",
        "rule_type": "source",
        "condition_operator": "equals",
        "condition_value": "referral",
        "points": 20,
    },
    {
        "name": "Urgent Tone",
        "description": "Lead's message signals urgency",
        "rule_type": "tone",
        "condition_operator": "contains",
        "condition_value": "urgent",
        "points": 15,
    },
]


# Template names carry the "premium"/"basic" keywords the suggestion logic
# looks for.
DEFAULT_EMAIL_TEMPLATES: List[Dict[str, str]] = [
    {
        "name": "Premium Follow-up",
        "subject": "Let's get you started today",
        "body": (
            "Hi {{name}},\n\nThanks for the detailed note. A specialist will "
            "reach out within the hour to book a call at a time that suits you."
        ),
    },
    {
        "name": "Basic Follow-up",
        "subject": "Thanks for reaching out",
        "body": (
            "Hi {{name}},\n\nThanks for getting in touch. We'll reply with more "
            "information shortly."
        ),
    },
]

"""WhatsApp Cloud API notification bodies used across tests."""


def message_payload(text, sender="34600111222", phone_id="PHONE-1", msg_id="wamid.1"):
    return {
        "object": "whatsapp_business_account",
        "entry": [{
            "id": "WABA-1",
            "changes": [{
                "field": "messages",
                "value": {
                    "messaging_product": "whatsapp",
                    "metadata": {"display_phone_number": "34900000000", "phone_number_id": phone_id},
                    "contacts": [{"profile": {"name": "Ana"}, "wa_id": sender}],
                    "messages": [{
                        "from": sender,
                        "id": msg_id,
                        "timestamp": "1735900000",
                        "type": "text",
                        "text": {"body": text},
                    }],
                },
            }],
        }],
    }


def status_payload(phone_id="PHONE-1"):
    return {
        "object": "whatsapp_business_account",
        "entry": [{
            "id": "WABA-1",
            "changes": [{
                "field": "messages",
                "value": {
                    "messaging_product": "whatsapp",
                    "metadata": {"phone_number_id": phone_id},
                    "statuses": [{"id": "wamid.1", "status": "delivered", "recipient_id": "34600111222"}],
                },
            }],
        }],
    }

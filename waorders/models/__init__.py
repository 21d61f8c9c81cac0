from waorders.models.conversation import Conversation
from waorders.models.message import Message
from waorders.models.whatsapp_config import WhatsAppConfig

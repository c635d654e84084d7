"""
Email templates for quote lifecycle events.

Rendering is pure: quote data in, subject/html/text out. Every value
interpolated into HTML is escaped. Client-facing copy is in Spanish.
"""

from dataclasses import dataclass
from html import escape

from quote_tracker.config.settings import Settings, settings as default_settings
from quote_tracker.database.base import utcnow
from quote_tracker.models.quote import Quote, QuoteStatus, ServiceType
from quote_tracker.utils.formatting import format_price

SERVICE_DISPLAY_NAMES = {
    ServiceType.LANDING_PAGE: "Landing Page",
    ServiceType.CORPORATE_WEB: "Web Corporativa",
    ServiceType.ECOMMERCE: "Tienda Online",
    ServiceType.SOCIAL_MEDIA: "Gestión de Redes Sociales",
}

STATUS_DISPLAY_NAMES = {
    QuoteStatus.PENDING: "Pendiente",
    QuoteStatus.IN_REVIEW: "En revisión",
    QuoteStatus.QUOTED: "Cotizada",
    QuoteStatus.COMPLETED: "Completada",
    QuoteStatus.CANCELLED: "Cancelada",
}

STATUS_FOLLOW_UPS = {
    QuoteStatus.QUOTED: (
        "Hemos preparado una propuesta personalizada para tu proyecto. "
        "Te contactaremos pronto con todos los detalles."
    ),
    QuoteStatus.COMPLETED: (
        "¡Cotización completada! Gracias por confiar en nosotros. "
        "Esperamos trabajar contigo en tu próximo proyecto."
    ),
}

URGENT_PREFIX = "🔥 URGENTE - "


@dataclass
class RenderedTemplate:
    subject: str
    html: str
    text: str


def service_display_name(service_type: ServiceType | str) -> str:
    try:
        return SERVICE_DISPLAY_NAMES[ServiceType(service_type)]
    except ValueError:
        return str(service_type)


def status_display_name(status: QuoteStatus | str) -> str:
    try:
        return STATUS_DISPLAY_NAMES[QuoteStatus(status)]
    except ValueError:
        return str(status)


class TemplateRenderer:
    """
    Renders lifecycle emails.
    
    Args:
        settings: Source of the public base URL, company contacts and the
            high-priority threshold
    """
    
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings
    
    @property
    def company(self):
        return self.settings.company
    
    def tracking_url(self, access_token: str) -> str:
        base_url = self.settings.public_base_url.rstrip("/")
        return f"{base_url}/cotizacion/seguimiento/{access_token}"
    
    def admin_url(self, quote_id: str) -> str:
        base_url = self.settings.public_base_url.rstrip("/")
        return f"{base_url}/admin/cotizaciones/{quote_id}"
    
    def is_high_priority(self, quote: Quote) -> bool:
        return quote.estimated_price > self.settings.notifications.high_priority_threshold
    
    def _contact_html(self) -> str:
        return (
            "<p>"
            f"📧 {escape(self.company.email)}<br>"
            f"📱 WhatsApp: {escape(self.company.whatsapp)}<br>"
            f"🌐 {escape(self.company.website)}"
            "</p>"
        )
    
    def _contact_text(self) -> str:
        return (
            f"Email: {self.company.email}\n"
            f"WhatsApp: {self.company.whatsapp}\n"
            f"Web: {self.company.website}"
        )
    
    def _layout(self, subject: str, heading: str, body: str) -> str:
        year = utcnow().year
        return (
            "<!DOCTYPE html>"
            '<html lang="es"><head><meta charset="utf-8">'
            f"<title>{escape(subject)}</title></head>"
            '<body style="font-family: Arial, sans-serif; color: #333; max-width: 600px; margin: 0 auto;">'
            f"<h1>{escape(heading)}</h1>"
            f"{body}"
            '<hr><p style="font-size: 12px; color: #666;">'
            "Este email fue enviado automáticamente. Por favor no respondas a este mensaje.<br>"
            f"© {year} {escape(self.company.name)}"
            "</p></body></html>"
        )
    
    def client_confirmation(self, quote: Quote) -> RenderedTemplate:
        """Sent to the client right after submission."""
        service = service_display_name(quote.service_type)
        tracking_url = self.tracking_url(quote.access_token)
        subject = f"Cotización {quote.quote_number} - {service} - {self.company.name}"
        
        body = (
            f"<p>Hola <strong>{escape(quote.client_name)}</strong>,</p>"
            "<p>Hemos recibido tu solicitud de cotización para "
            f"<strong>{escape(service)}</strong>. Nuestro equipo está revisando los "
            "detalles de tu proyecto y te responderemos dentro de las próximas 24-48 horas.</p>"
            "<ul>"
            f"<li><strong>Número de cotización:</strong> {escape(quote.quote_number)}</li>"
            f"<li><strong>Servicio:</strong> {escape(service)}</li>"
            f"<li><strong>Estimación inicial:</strong> {format_price(quote.estimated_price)}</li>"
            "</ul>"
            "<p>Puedes hacer seguimiento del estado de tu cotización en cualquier momento:</p>"
            f'<p><a href="{escape(tracking_url)}">Ver estado de mi cotización</a></p>'
            f"{self._contact_html()}"
        )
        text = (
            "¡Gracias por tu solicitud de cotización!\n\n"
            f"Hola {quote.client_name},\n\n"
            f"Hemos recibido tu solicitud de cotización para {service}.\n\n"
            f"Número de cotización: {quote.quote_number}\n"
            f"Estimación inicial: {format_price(quote.estimated_price)}\n\n"
            f"Seguimiento: {tracking_url}\n\n"
            f"{self._contact_text()}"
        )
        return RenderedTemplate(
            subject=subject,
            html=self._layout(subject, "¡Gracias por tu solicitud de cotización!", body),
            text=text,
        )
    
    def admin_notification(self, quote: Quote) -> RenderedTemplate:
        """Sent to the admin inbox; marked urgent above the threshold."""
        service = service_display_name(quote.service_type)
        urgent = self.is_high_priority(quote)
        admin_url = self.admin_url(quote.id)
        subject = (
            f"{URGENT_PREFIX if urgent else ''}"
            f"Nueva Cotización {quote.quote_number} - {service}"
        )
        heading = "🔥 COTIZACIÓN URGENTE" if urgent else "📋 Nueva Cotización"
        threshold = format_price(self.settings.notifications.high_priority_threshold)
        
        body = (
            (
                f"<p><strong>Esta cotización supera los {threshold} ARS "
                "y requiere atención inmediata.</strong></p>"
                if urgent else ""
            )
            + "<h3>Detalles de la cotización:</h3><ul>"
            f"<li><strong>Número:</strong> {escape(quote.quote_number)}</li>"
            f"<li><strong>Servicio:</strong> {escape(service)}</li>"
            f"<li><strong>Estimación:</strong> {format_price(quote.estimated_price)}</li>"
            f"<li><strong>Prioridad:</strong> {'ALTA' if urgent else 'Media'}</li>"
            "</ul><h3>Información del cliente:</h3><ul>"
            f"<li><strong>Nombre:</strong> {escape(quote.client_name)}</li>"
            f"<li><strong>Email:</strong> {escape(quote.client_email)}</li>"
            "</ul>"
            f'<p><a href="{escape(admin_url)}">Ver Cotización Completa</a></p>'
            f'<p>Seguimiento del cliente: {escape(self.tracking_url(quote.access_token))}</p>'
        )
        text = (
            f"{heading}\n\n"
            f"Número: {quote.quote_number}\n"
            f"Servicio: {service}\n"
            f"Estimación: {format_price(quote.estimated_price)}\n"
            f"Prioridad: {'ALTA' if urgent else 'Media'}\n\n"
            f"Cliente: {quote.client_name} <{quote.client_email}>\n\n"
            f"Panel: {admin_url}"
        )
        return RenderedTemplate(subject=subject, html=self._layout(subject, heading, body), text=text)
    
    def status_update(
        self,
        quote: Quote,
        new_status: QuoteStatus,
        message: str | None = None,
    ) -> RenderedTemplate:
        service = service_display_name(quote.service_type)
        status = status_display_name(new_status)
        tracking_url = self.tracking_url(quote.access_token)
        follow_up = STATUS_FOLLOW_UPS.get(QuoteStatus(new_status))
        subject = f"Actualización de cotización {quote.quote_number} - {status}"
        
        body = (
            f"<p>Hola <strong>{escape(quote.client_name)}</strong>,</p>"
            "<p>Te informamos que el estado de tu cotización para "
            f"<strong>{escape(service)}</strong> ha sido actualizado.</p>"
            f"<p><strong>Nuevo estado:</strong> {escape(status)}</p>"
            + (f"<p><strong>Mensaje:</strong> {escape(message)}</p>" if message else "")
            + f"<p><strong>Cotización:</strong> {escape(quote.quote_number)}</p>"
            "<p>Puedes ver todos los detalles y el historial completo de tu cotización:</p>"
            f'<p><a href="{escape(tracking_url)}">Ver mi cotización</a></p>'
            + (f"<p>{escape(follow_up)}</p>" if follow_up else "")
            + self._contact_html()
        )
        text = "\n".join(
            line for line in (
                f"Hola {quote.client_name},",
                "",
                f"El estado de tu cotización {quote.quote_number} ({service}) ahora es: {status}.",
                f"Mensaje: {message}" if message else None,
                "",
                f"Seguimiento: {tracking_url}",
                follow_up,
                "",
                self._contact_text(),
            )
            if line is not None
        )
        return RenderedTemplate(
            subject=subject,
            html=self._layout(subject, "Actualización de tu cotización", body),
            text=text,
        )
    
    def reminder(self, quote: Quote) -> RenderedTemplate:
        service = service_display_name(quote.service_type)
        tracking_url = self.tracking_url(quote.access_token)
        subject = f"Recordatorio: Tu cotización {quote.quote_number} está siendo procesada"
        
        body = (
            f"<p>Hola <strong>{escape(quote.client_name)}</strong>,</p>"
            "<p>Queremos recordarte que tu solicitud de cotización "
            f"<strong>{escape(quote.quote_number)}</strong> para "
            f"<strong>{escape(service)}</strong> está siendo procesada por nuestro equipo.</p>"
            "<p>Mientras tanto, puedes verificar el estado actual de tu cotización:</p>"
            f'<p><a href="{escape(tracking_url)}">Ver estado actual</a></p>'
            "<p>Si tienes más detalles sobre tu proyecto o preguntas específicas, "
            "no dudes en contactarnos:</p>"
            f"{self._contact_html()}"
        )
        text = (
            f"Hola {quote.client_name},\n\n"
            f"Tu solicitud de cotización {quote.quote_number} para {service} "
            "está siendo procesada por nuestro equipo.\n\n"
            f"Seguimiento: {tracking_url}\n\n"
            f"{self._contact_text()}\n\n"
            "Gracias por tu paciencia."
        )
        return RenderedTemplate(
            subject=subject,
            html=self._layout(subject, "⏰ Recordatorio de cotización", body),
            text=text,
        )

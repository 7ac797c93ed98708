from django.contrib import admin

from common.models import EmailLog


@admin.register(EmailLog)
class EmailLogAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ("to", "subject", "sent_at")
    search_fields = ("to", "subject")
    readonly_fields = ("to", "subject", "sent_at", "body", "html")
    exclude = ("compressed_body", "compressed_html")

"""
Django admin configuration for distribution app.
"""
from django.contrib import admin
from distribution.models import (
    Advertiser,
    AdvertiserDistributionSetting,
    AdvertiserEmailRejection,
    Affiliate,
    AffiliateDistributionRule,
    Lead,
    LeadDistribution,
    LeadQueueItem,
    RejectedLead,
)


class ReadOnlyAuditAdmin(admin.ModelAdmin):
    """Append-only audit records: no manual creation or deletion."""

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class LeadDistributionInline(admin.TabularInline):
    """Inline display of distributions for a lead."""
    model = LeadDistribution
    extra = 0
    readonly_fields = ('advertiser', 'status', 'external_lead_id', 'sent_at', 'response')
    can_delete = False


class RejectedLeadInline(admin.TabularInline):
    """Inline display of advertiser rejections for a lead."""
    model = RejectedLead
    extra = 0
    readonly_fields = ('advertiser', 'reason', 'created_at')
    can_delete = False


@admin.register(Affiliate)
class AffiliateAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'is_active', 'created_at')
    list_filter = ('is_active',)
    search_fields = ('name',)


@admin.register(Advertiser)
class AdvertiserAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'advertiser_type', 'is_active', 'daily_cap', 'hourly_cap')
    list_filter = ('advertiser_type', 'is_active')
    search_fields = ('name',)

    fieldsets = (
        ('Advertiser', {
            'fields': ('name', 'advertiser_type', 'is_active')
        }),
        ('Caps', {
            'fields': ('daily_cap', 'hourly_cap')
        }),
        ('Connection', {
            'fields': ('url', 'api_key', 'config'),
            'classes': ('collapse',)
        }),
    )


@admin.register(AffiliateDistributionRule)
class AffiliateDistributionRuleAdmin(admin.ModelAdmin):
    list_display = ('id', 'affiliate', 'advertiser', 'country_code', 'weight', 'daily_cap', 'is_active')
    list_filter = ('is_active', 'country_code')
    search_fields = ('affiliate__name', 'advertiser__name')


@admin.register(AdvertiserDistributionSetting)
class AdvertiserDistributionSettingAdmin(admin.ModelAdmin):
    list_display = ('id', 'advertiser', 'base_weight', 'default_daily_cap', 'default_hourly_cap', 'is_active')
    list_filter = ('is_active',)


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):
    """Admin interface for Lead model."""

    list_display = ('id', 'email', 'country_code', 'affiliate', 'status', 'distributed_at')
    list_filter = ('status', 'country_code')
    search_fields = ('id', 'email')
    readonly_fields = ('id', 'created_at', 'updated_at', 'distributed_at')

    inlines = [LeadDistributionInline, RejectedLeadInline]

    def has_delete_permission(self, request, obj=None):
        """Leads are retained for audit."""
        return False


@admin.register(LeadDistribution)
class LeadDistributionAdmin(ReadOnlyAuditAdmin):
    list_display = ('id', 'lead', 'advertiser', 'status', 'external_lead_id', 'sent_at')
    list_filter = ('status', 'created_at')
    search_fields = ('lead__id', 'external_lead_id')
    readonly_fields = ('lead', 'advertiser', 'affiliate', 'status', 'response',
                       'external_lead_id', 'autologin_url', 'sent_at', 'created_at')


@admin.register(RejectedLead)
class RejectedLeadAdmin(ReadOnlyAuditAdmin):
    list_display = ('id', 'lead', 'advertiser', 'created_at')
    search_fields = ('lead__id',)
    readonly_fields = ('lead', 'advertiser', 'reason', 'created_at')


@admin.register(AdvertiserEmailRejection)
class AdvertiserEmailRejectionAdmin(admin.ModelAdmin):
    list_display = ('id', 'email', 'advertiser', 'created_at')
    search_fields = ('email',)


@admin.register(LeadQueueItem)
class LeadQueueItemAdmin(ReadOnlyAuditAdmin):
    """Queue items are operator-reviewable; status can be edited to requeue."""

    list_display = ('id', 'lead', 'status', 'attempts', 'max_attempts', 'claimed_at', 'processed_at')
    list_filter = ('status',)
    search_fields = ('lead__id',)
    readonly_fields = ('lead', 'attempts', 'error_message', 'claim_token',
                       'claimed_at', 'processed_at', 'created_at', 'updated_at')

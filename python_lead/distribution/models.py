"""
Data models for Lead Router Service.
"""
from django.db import models


class Affiliate(models.Model):
    """Originating partner that submits leads."""

    name = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class Advertiser(models.Model):
    """
    External delivery target for leads.
    advertiser_type selects the delivery adapter used to talk to it.
    """

    name = models.CharField(max_length=255)
    advertiser_type = models.CharField(max_length=50, db_index=True)
    is_active = models.BooleanField(default=True, db_index=True)
    daily_cap = models.PositiveIntegerField(null=True, blank=True)
    hourly_cap = models.PositiveIntegerField(null=True, blank=True)
    url = models.URLField(max_length=500, blank=True, default='')
    api_key = models.CharField(max_length=255, blank=True, default='')
    config = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.advertiser_type})"


class Lead(models.Model):
    """
    Prospective customer record submitted by an affiliate.
    Created by ingestion, routed by the distribution engine, never deleted here.
    """

    class Status(models.TextChoices):
        NEW = 'new', 'New'
        CONTACTED = 'contacted', 'Contacted'
        QUALIFIED = 'qualified', 'Qualified'
        CONVERTED = 'converted', 'Converted'
        LOST = 'lost', 'Lost'
        REJECTED = 'rejected', 'Rejected'

    firstname = models.CharField(max_length=100)
    lastname = models.CharField(max_length=100)
    email = models.EmailField(unique=True)
    mobile = models.CharField(max_length=50)
    country_code = models.CharField(max_length=2, db_index=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    offer_name = models.CharField(max_length=255, blank=True, default='')
    custom1 = models.CharField(max_length=255, blank=True, default='')
    custom2 = models.CharField(max_length=255, blank=True, default='')
    custom3 = models.CharField(max_length=255, blank=True, default='')
    comment = models.TextField(blank=True, default='')
    affiliate = models.ForeignKey(
        Affiliate,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='leads'
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.NEW,
        db_index=True
    )
    distributed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Lead {self.id} - {self.status}"


class AffiliateDistributionRule(models.Model):
    """
    Routing rule scoped to an (affiliate, advertiser, country) triple.
    Active rules for a lead's (affiliate, country) replace the global tier entirely.

    weekly_schedule, when set, maps weekday names ('monday'..'sunday') to
    {"is_active": bool, "start_time": "HH:MM", "end_time": "HH:MM"}.
    """

    affiliate = models.ForeignKey(
        Affiliate,
        on_delete=models.CASCADE,
        related_name='distribution_rules'
    )
    advertiser = models.ForeignKey(
        Advertiser,
        on_delete=models.CASCADE,
        related_name='affiliate_rules'
    )
    country_code = models.CharField(max_length=2)
    weight = models.PositiveIntegerField(null=True, blank=True)
    daily_cap = models.PositiveIntegerField(null=True, blank=True)
    hourly_cap = models.PositiveIntegerField(null=True, blank=True)
    timezone = models.CharField(max_length=64, default='UTC')
    start_time = models.TimeField(null=True, blank=True)
    end_time = models.TimeField(null=True, blank=True)
    weekly_schedule = models.JSONField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['affiliate', 'country_code', 'is_active'], name='distributio_affilia_7c1d2e_idx'),
        ]

    def __str__(self):
        return f"Rule {self.affiliate_id}/{self.country_code} -> {self.advertiser_id}"


class AdvertiserDistributionSetting(models.Model):
    """Global default routing settings for an advertiser."""

    advertiser = models.OneToOneField(
        Advertiser,
        on_delete=models.CASCADE,
        related_name='distribution_setting'
    )
    base_weight = models.PositiveIntegerField(null=True, blank=True)
    default_daily_cap = models.PositiveIntegerField(null=True, blank=True)
    default_hourly_cap = models.PositiveIntegerField(null=True, blank=True)
    countries = models.JSONField(default=list, blank=True)
    affiliates = models.JSONField(default=list, blank=True)
    start_time = models.TimeField(null=True, blank=True)
    end_time = models.TimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Settings for advertiser {self.advertiser_id}"


class LeadDistribution(models.Model):
    """
    Records a delivery of a lead to an advertiser.
    Append-only audit trail, read by reporting.
    """

    class Status(models.TextChoices):
        SENT = 'sent', 'Sent'
        FAILED = 'failed', 'Failed'

    lead = models.ForeignKey(
        Lead,
        on_delete=models.CASCADE,
        related_name='distributions'
    )
    advertiser = models.ForeignKey(
        Advertiser,
        on_delete=models.CASCADE,
        related_name='distributions'
    )
    affiliate = models.ForeignKey(
        Affiliate,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='distributions'
    )
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.SENT,
        db_index=True
    )
    response = models.TextField(blank=True, default='')
    external_lead_id = models.CharField(max_length=255, null=True, blank=True)
    autologin_url = models.URLField(max_length=1000, null=True, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['advertiser', 'status', 'created_at'], name='distributio_adverti_3f8a9b_idx'),
        ]

    def __str__(self):
        return f"Distribution of Lead {self.lead_id} to {self.advertiser_id} - {self.status}"


class RejectedLead(models.Model):
    """One advertiser-level rejection during failover."""

    lead = models.ForeignKey(
        Lead,
        on_delete=models.CASCADE,
        related_name='rejections'
    )
    advertiser = models.ForeignKey(
        Advertiser,
        on_delete=models.CASCADE,
        related_name='rejections'
    )
    reason = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Lead {self.lead_id} rejected by {self.advertiser_id}"


class AdvertiserEmailRejection(models.Model):
    """Remembers that an advertiser refused an email so it is not offered again."""

    email = models.EmailField()
    advertiser = models.ForeignKey(
        Advertiser,
        on_delete=models.CASCADE,
        related_name='email_rejections'
    )
    rejection_reason = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['email', 'advertiser'],
                name='uniq_email_rejection_per_advertiser'
            ),
        ]

    def __str__(self):
        return f"{self.email} rejected by {self.advertiser_id}"


class LeadQueueItem(models.Model):
    """
    Work queue entry wrapping a lead for at-least-once distribution.
    Exactly one item per lead; items are kept after completion for audit.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PROCESSING = 'processing', 'Processing'
        COMPLETED = 'completed', 'Completed'
        FAILED = 'failed', 'Failed'

    lead = models.OneToOneField(
        Lead,
        on_delete=models.CASCADE,
        related_name='queue_item'
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True
    )
    attempts = models.PositiveIntegerField(default=0)
    max_attempts = models.PositiveIntegerField(default=3)
    error_message = models.TextField(null=True, blank=True)
    claim_token = models.UUIDField(null=True, blank=True, db_index=True)
    claimed_at = models.DateTimeField(null=True, blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='distributio_status_5e6f7a_idx'),
        ]

    def __str__(self):
        return f"Queue item {self.id} for Lead {self.lead_id} - {self.status}"

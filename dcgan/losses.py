"""
Loss function for DCGAN training.

Both the discriminator and the adversarial composite are trained with binary
cross entropy against explicit targets. The discriminator's targets carry
uniform jitter so it does not grow overconfident; real targets therefore lie
above 1, so the loss is computed from logits, which accepts any target value.
"""

import torch
import torch.nn as nn


class GANLoss(nn.Module):
    """
    Binary cross entropy GAN loss with jittered discriminator targets.

    The discriminator learns real images -> real_label, generated -> fake_label.
    The generator is trained through the composite with every target set to
    real_label.
    """

    def __init__(self, real_label: float = 1.0, fake_label: float = 0.0, label_noise: float = 0.5):
        """
        Initialize GAN loss.

        Args:
            real_label: Target for real images
            fake_label: Target for generated images
            label_noise: Upper bound of the uniform jitter added to discriminator targets
        """
        super().__init__()
        if not 0.0 <= label_noise <= 0.5:
            raise ValueError(f"label_noise must be in [0, 0.5], got {label_noise}")
        self.real_label = real_label
        self.fake_label = fake_label
        self.label_noise = label_noise
        self.bce_loss = nn.BCEWithLogitsLoss()

    def discriminator_targets(self, num_fake: int, num_real: int,
                              device: torch.device = None) -> torch.Tensor:
        """
        Build targets for a combined batch, generated block first.

        Args:
            num_fake: Number of generated images at the head of the batch
            num_real: Number of real images at the tail of the batch
            device: Device of the targets

        Returns:
            Target tensor of shape (num_fake + num_real, 1)
        """
        targets = torch.cat([
            torch.full((num_fake, 1), self.fake_label, device=device),
            torch.full((num_real, 1), self.real_label, device=device),
        ])
        return targets + self.label_noise * torch.rand_like(targets)

    def generator_targets(self, batch_size: int, device: torch.device = None) -> torch.Tensor:
        """
        All-real targets used to train the generator.

        Args:
            batch_size: Number of latent vectors in the batch
            device: Device of the targets

        Returns:
            Target tensor of shape (batch_size, 1)
        """
        return torch.full((batch_size, 1), self.real_label, device=device)

    def forward(self, logits: torch.Tensor, targets: torch.Tensor) -> torch.Tensor:
        """
        Compute the BCE between sigmoid(logits) and targets.

        Args:
            logits: Discriminator pre-sigmoid scores of shape (batch_size, 1)
            targets: Targets of the same shape

        Returns:
            Scalar loss
        """
        return self.bce_loss(logits, targets)
